"""
Error taxonomy for regbook.
All errors surface to the caller; none are retried.
"""

from pathlib import Path
from typing import Optional


class RegbookError(Exception):
    """Base class for all regbook errors."""


class FileAccessError(RegbookError):
    """Workbook path exists but cannot be read, or cannot be written."""

    def __init__(self, path: Path, action: str, reason: str = ""):
        self.path = Path(path)
        self.action = action
        self.reason = reason
        message = f"Cannot {action} workbook '{self.path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidSheetNameError(RegbookError, ValueError):
    """Sheet name violates the spreadsheet format's naming rules."""

    def __init__(self, name: Optional[str], reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid sheet name {name!r}: {reason}")


class InvalidModelError(RegbookError):
    """Fitted regression object is missing or has a malformed coefficient table."""
