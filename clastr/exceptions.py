"""
Exceptions raised by the CLASTR search engine.
"""

from typing import Optional


class ClastrError(Exception):
    """Base exception for CLASTR errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class InvalidParameterError(ClastrError, ValueError):
    """
    Raised when a search parameter cannot be accepted.

    Covers unsupported algorithm or scoring mode indices, unknown species
    codes and malformed numeric values. The whole request is rejected before
    any catalog scan.
    """

    def __init__(self, name: str, value: str, suggestion: Optional[str] = None):
        self.name = name
        self.value = value
        super().__init__(message=f"{name}={value}", suggestion=suggestion)
