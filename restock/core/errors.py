from __future__ import annotations

from fastapi import HTTPException


class ConfigError(RuntimeError):
    """A required setting is missing; raised at startup or first use."""


class ValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class StoreError(RuntimeError):
    """A store or queue call failed. Treated as transient by the pipeline."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        msg = f"{operation} failed"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)
        self.operation = operation
        self.cause = cause


class LookupFailed(StoreError):
    """The existing-row lookup itself failed. Never the same as "not found"."""
