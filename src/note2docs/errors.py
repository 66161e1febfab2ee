"""Error taxonomy for note2docs."""

from __future__ import annotations


class Note2DocsError(RuntimeError):
    """Base class for conversion errors."""


class AssetNotFoundError(Note2DocsError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Image not found: {path}")
        self.path = path


class AssetProcessingError(Note2DocsError):
    """Reading, rasterizing or storing an asset failed."""


class SvgDecodeError(AssetProcessingError):
    pass


class RasterBackendError(AssetProcessingError):
    """No usable rendering backend for vector images."""


class RenderError(Note2DocsError):
    """The markdown renderer failed; no partial HTML exists."""


class LatexRenderError(Note2DocsError):
    pass
