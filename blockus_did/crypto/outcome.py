"""Explicit success-or-error result for key and token operations."""

from typing import Generic, TypeVar

from pydantic import BaseModel

from blockus_did.crypto.errors import ERROR_TYPES, DIDTokenError, ErrorKind

T = TypeVar("T")


class Outcome(BaseModel, Generic[T]):
    """Either a value or the kind of error that prevented producing it."""

    value: T | None = None
    error: ErrorKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: DIDTokenError) -> "Outcome[T]":
        return cls(error=exc.kind, detail=str(exc))

    def unwrap(self) -> T:
        """Return the value, or raise the exception matching the error kind."""
        if self.error is not None:
            raise ERROR_TYPES[self.error](self.detail)
        assert self.value is not None
        return self.value
