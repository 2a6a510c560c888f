"""
Error types raised by the analytics core and the admission store.

Every error carries:
- code:    machine-readable identifier (ADMISSION_INVALID / ADMISSION_WRITE_FAILED / ...)
- message: human-readable description
- detail:  optional structured context (list / dict / None)

The API layer translates these into HTTP responses; nothing here is fatal.
"""

from __future__ import annotations

from typing import Any


class AnalyticsError(Exception):
    """Base class for all analytics errors."""

    code = "ANALYTICS_ERROR"

    def __init__(self, message: str, code: str | None = None, detail: Any = None):
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(message)


class AdmissionValidationError(AnalyticsError):
    """A live admission submission violated one or more field constraints."""

    code = "ADMISSION_INVALID"

    def __init__(self, failures):
        self.failures = list(failures)
        super().__init__(
            f"{len(self.failures)} invalid field(s)",
            detail=[{"field": f.field, "message": f.message} for f in self.failures],
        )


class AdmissionWriteError(AnalyticsError):
    """The admission store rejected a write. No local state was changed."""

    code = "ADMISSION_WRITE_FAILED"


class DatasetNotReadyError(AnalyticsError):
    """A view was requested before the historical or live data finished loading."""

    code = "DATASET_LOADING"
