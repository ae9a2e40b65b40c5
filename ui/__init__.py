"""UI module."""

from .preview import PreviewWindow

__all__ = ["PreviewWindow"]
