# src/lulcpost/ports/stack_store.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..contracts.stack import ClassStack

URI = str

@runtime_checkable
class StackStorePort(Protocol):
    """
    Almacén de stacks multi-anuales (GeoTIFF, asset remoto, memoria...).
    Reglas: read() devuelve SIEMPRE un ClassStack validado (años == bandas);
    write() persiste datos + procedencia o falla sin escribir nada parcial.
    """
    def read(self, uri: URI) -> ClassStack: ...
    def write(self, uri: URI, stack: ClassStack) -> URI: ...
    def exists(self, uri: URI) -> bool: ...

__all__ = ["StackStorePort", "URI"]
