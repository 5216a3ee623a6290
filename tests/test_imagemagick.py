"""Tests for the ImageMagick converter adapter"""

import shutil
from pathlib import Path

import pytest

from adapters.imagemagick import ImageMagickConverter
from core.interfaces.converter import IconConverter


def test_arguments_without_background(tmp_path: Path):
    converter = ImageMagickConverter(["convert"])
    args = converter.build_arguments(tmp_path / "in.ico", tmp_path / "out", 3)

    assert args == [
        "convert",
        str(tmp_path / "in.ico"),
        "-alpha",
        "on",
        "-set",
        "filename:area",
        "%w",
        str(tmp_path / "out" / "3.%[filename:area].png"),
    ]


def test_arguments_with_background(tmp_path: Path):
    converter = ImageMagickConverter(["magick"])
    args = converter.build_arguments(tmp_path / "in.ico", tmp_path / "out", 0, "#da532c")

    assert args[:2] == ["magick", str(tmp_path / "in.ico")]
    assert args[2:7] == ["-background", "#da532c", "-alpha", "on", "-flatten"]
    assert args[-1].endswith("0.%[filename:area].png")


@pytest.mark.parametrize("color", ["-write /etc/passwd", "x" * 100, ""])
def test_suspicious_background_is_dropped(tmp_path: Path, color: str):
    args = ImageMagickConverter().build_arguments(tmp_path / "in.ico", tmp_path, 0, color)
    assert "-background" not in args


def test_satisfies_protocol():
    assert isinstance(ImageMagickConverter(), IconConverter)


async def test_missing_binary_reports_failure(tmp_path: Path):
    source = tmp_path / "in.ico"
    source.write_bytes(b"ICO")
    converter = ImageMagickConverter(["definitely-not-imagemagick-here"])

    assert await converter.convert(source, tmp_path, 0) is False


@pytest.mark.skipif(shutil.which("false") is None, reason="needs coreutils")
async def test_non_zero_exit_reports_failure(tmp_path: Path):
    source = tmp_path / "in.ico"
    source.write_bytes(b"ICO")

    assert await ImageMagickConverter(["false"]).convert(source, tmp_path, 0) is False


@pytest.mark.skipif(shutil.which("true") is None, reason="needs coreutils")
async def test_zero_exit_reports_success(tmp_path: Path):
    source = tmp_path / "in.ico"
    source.write_bytes(b"ICO")

    assert await ImageMagickConverter(["true"]).convert(source, tmp_path, 0) is True
