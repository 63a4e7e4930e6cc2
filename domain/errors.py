from __future__ import annotations

from typing import Dict, List, Optional


class DesignerError(Exception):
    """Base exception for play designer boundary failures."""


class PlayDataError(DesignerError):
    """Raised when a stored play blob cannot be turned into canvas state."""

    def __init__(self, errors: List[Dict[str, object]]) -> None:
        super().__init__("Play data failed validation")
        self.errors = errors


class PlayGenerationError(DesignerError):
    """Raised when the play generation endpoint cannot produce a usable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExportError(DesignerError):
    """Raised when the canvas cannot be rasterized, copied or written."""


__all__ = [
    "DesignerError",
    "ExportError",
    "PlayDataError",
    "PlayGenerationError",
]
