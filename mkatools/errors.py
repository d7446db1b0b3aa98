from __future__ import annotations

from typing import Optional


class ArchiveError(Exception):
    """Base error for the mkatools archiving pipeline."""


class ExternalProcessError(ArchiveError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, stage: str, returncode: Optional[int] = None, detail: Optional[str] = None):
        self.stage = stage
        self.returncode = returncode
        if detail is None:
            detail = "process exited unsuccessfully"
            if returncode is not None:
                detail += f" (exit status {returncode})"
        super().__init__(f"{stage}: {detail}")


class ParseError(ArchiveError):
    """Raised when tool output or a tag/chapter document lacks exactly one expected value."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        super().__init__(f"{reason}: {field}" if field else reason)


class ValidationError(ArchiveError):
    """Raised when track names, lengths or uids disagree in count or order."""


class AlbumExistsError(ArchiveError, FileExistsError):
    """Raised when the per-track output directory for an album already exists."""
