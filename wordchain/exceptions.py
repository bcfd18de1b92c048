"""Custom exception classes for the Word Chain bot.

Provides domain-specific exceptions for better error handling and debugging.
"""
from __future__ import annotations

from typing import Optional


class WordChainError(Exception):
    """Base exception for all Word Chain specific errors."""
    pass


class ConfigurationError(WordChainError):
    """Raised when bot configuration is missing or invalid."""
    pass


class ValidationError(WordChainError):
    """Raised when user input validation fails."""
    pass


class OracleError(WordChainError):
    """Raised when the dictionary API returns an unusable response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class OracleUnavailableError(OracleError):
    """Raised when the dictionary API cannot be reached."""
    pass
