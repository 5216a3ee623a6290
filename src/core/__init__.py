"""Core de favicon-d2: dominio, configuración y servicios (sin CLI ni servidor)."""
