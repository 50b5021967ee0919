"""Errors raised by the block/HTML converter."""

from typing import Optional


class BlockDocError(Exception):
    """Base exception for converter errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class UnparseableContentError(BlockDocError):
    """Input cannot be read as markup or as a block document at all."""

    pass
