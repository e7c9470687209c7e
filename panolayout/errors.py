"""Error types shared by the mesh and reconstruction packages."""

from __future__ import annotations


class MeshContractError(AssertionError):
    """Raised when a mesh operation is called with its preconditions violated.

    These are programming errors (a handle out of range, a face that is not a
    closed cycle, an unstitched mesh handed to decomposition) and are not meant
    to be caught and recovered from.
    """


class ReconstructionError(ValueError):
    """Raised when scene tables handed to the reconstruction are inconsistent."""


def require(condition: bool, message: str, *args: object) -> None:
    """Raise :class:`MeshContractError` with ``message % args`` unless ``condition`` holds."""

    if not condition:
        raise MeshContractError(message % args if args else message)
