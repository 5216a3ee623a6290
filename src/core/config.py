"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/ImageMagick/web) lean config de forma consistente.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _project_root() -> Path:
    # core/config.py -> core -> src -> <project_root>
    return Path(__file__).resolve().parents[2]


class BestFitPolicy(str, Enum):
    """Selection rule used when no cached width matches exactly."""

    CLOSEST = "closest"
    LEGACY = "legacy"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters/servidor.
    """

    model_config = SettingsConfigDict(
        env_prefix="FAVICON_D2_",
        extra="ignore",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout de socket inactivo por request (segundos).",
    )
    user_agent: str = Field(
        default="favicon-d2/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para las peticiones salientes.",
    )
    max_redirects: int = Field(
        default=5,
        ge=0,
        le=30,
        description="Saltos de redirección máximos por candidato antes de abandonarlo.",
    )
    max_connections: int = Field(
        default=200,
        ge=1,
        le=5000,
        description="Tope de conexiones simultáneas del pool HTTP.",
    )

    cache_ttl_seconds: float = Field(
        default=3 * 24 * 60 * 60,
        gt=0,
        description="Antigüedad máxima (segundos) de una entrada de caché servida sin re-resolver.",
    )
    default_size: int = Field(
        default=16,
        ge=1,
        le=4096,
        description="Ancho en píxeles cuando la petición no indica `size`.",
    )
    best_fit_policy: BestFitPolicy = Field(
        default=BestFitPolicy.CLOSEST,
        description="Regla de selección cuando no hay un ancho exacto en caché.",
    )
    data_dir: Path = Field(
        default_factory=lambda: _project_root() / "data",
        description="Raíz de `favicons/` (caché por host) y `favicons/tmp/` (scratch).",
    )

    return_default: bool = Field(
        default=False,
        description="Servir el icono por defecto en vez de un cuerpo vacío.",
    )
    default_icon_path: Path = Field(
        default_factory=lambda: _project_root() / "default.ico",
        description="Icono servido cuando `return_default` está activo.",
    )

    convert_command: list[str] = Field(
        default_factory=lambda: ["convert"],
        min_length=1,
        description="Invocación de ImageMagick (p.ej. ['magick'] en IM7).",
    )

    server_host: str = Field(
        default="0.0.0.0",
        description="Interfaz de escucha de `serve`.",
    )
    server_port: int = Field(
        default=8081,
        ge=1,
        le=65535,
        description="Puerto de escucha de `serve`.",
    )
    log_level: str = Field(
        default="INFO",
        description="Nivel de logging raíz (DEBUG muestra la traza de cada candidato).",
    )

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "favicons"

    @property
    def scratch_dir(self) -> Path:
        return self.cache_dir / "tmp"
