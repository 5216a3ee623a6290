"""Adaptadores de I/O: HTTP saliente, ImageMagick y el shell HTTP entrante."""
