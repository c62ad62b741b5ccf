# src/lulcpost/contracts/errors.py
from __future__ import annotations

"""
Jerarquía de errores del post-procesamiento.

    LulcPostError
    ├── ShapeMismatchError     bandas con geometría distinta o años != bandas
    ├── ConfigurationError     umbrales/clases mal configurados
    ├── MissingReferenceError  falta el año de referencia del relleno final
    └── ProvenanceError        metadatos de salida ya asignados

Todos son fatales: no hay reintentos ni salida parcial.
"""


class LulcPostError(Exception):
    """Base de todos los errores del paquete."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ShapeMismatchError(LulcPostError, ValueError):
    pass


class ConfigurationError(LulcPostError, ValueError):
    pass


class MissingReferenceError(LulcPostError, KeyError):
    def __str__(self) -> str:
        # KeyError entrecomilla el mensaje; lo evitamos
        return self.message


class ProvenanceError(LulcPostError):
    pass


__all__ = [
    "LulcPostError",
    "ShapeMismatchError",
    "ConfigurationError",
    "MissingReferenceError",
    "ProvenanceError",
]
