"""Servicios del Core.

Por qué un paquete:
- Cada pieza del pipeline (descubrimiento, coordinación, caché, manejo de la
  petición) vive en su módulo y se prueba por separado.
"""
