"""Convert vault notes into themed HTML and Word documents."""

from .version import __version__

__all__ = ["__version__"]
