"""Contratos del Core.

Por qué:
- El servicio solo conoce `IconConverter`; ImageMagick (o un falso en tests)
  vive en `adapters/`.
"""
