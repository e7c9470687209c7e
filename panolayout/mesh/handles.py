"""Typed integer handles for mesh entities."""

from __future__ import annotations


class Handle(int):
    """Index into one of the mesh entity tables; ``-1`` marks an invalid handle."""

    __slots__ = ()

    def __new__(cls, value: int = -1):
        return super().__new__(cls, value)

    def valid(self) -> bool:
        return self >= 0

    def invalid(self) -> bool:
        return self < 0

    def __repr__(self) -> str:
        if self < 0:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}({int(self)})"

    __str__ = __repr__


class VertHandle(Handle):
    __slots__ = ()


class HalfHandle(Handle):
    __slots__ = ()


class FaceHandle(Handle):
    __slots__ = ()
