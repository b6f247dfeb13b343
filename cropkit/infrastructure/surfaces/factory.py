from cropkit.domain.interfaces import ISurfaceBackend
from cropkit.infrastructure.surfaces.array_surface import ArraySurfaceBackend


class SurfaceFactory:
    """
    Selects a drawing backend by name.
    """

    def __init__(self) -> None:
        self._array = ArraySurfaceBackend()

    def get_backend(self, name: str) -> ISurfaceBackend:
        key = (name or "").lower()

        if key in ("array", "cpu"):
            return self._array

        if key == "qt":
            # Qt only loaded on demand
            from cropkit.infrastructure.surfaces.qt_surface import QtSurfaceBackend

            return QtSurfaceBackend()

        raise ValueError(f"Unknown surface backend: {name}")


# Global instance for shared use
surface_factory = SurfaceFactory()
