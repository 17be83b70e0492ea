# This module implements the local checks a CSV goes through before upload.
# No network call happens here: extension, size and header are inspected on
# disk, and the header read is offloaded so the event loop keeps running.

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from learnlens.schema import (
    HEADER_PREVIEW_BYTES,
    MAX_FILE_BYTES,
    has_csv_extension,
    missing_columns,
)

logger = logging.getLogger(__name__)


class ValidationErrorKind(Enum):
    INVALID_EXTENSION = "invalid_extension"
    FILE_TOO_LARGE = "file_too_large"
    EMPTY_OR_HEADER_ONLY = "empty_or_header_only"
    MISSING_COLUMNS = "missing_columns"
    READ_ERROR = "read_error"


class ValidationError(Exception):
    """A candidate file failed intake validation."""

    def __init__(self, kind: ValidationErrorKind, message: str, missing: Tuple[str, ...] = ()):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.missing_columns = tuple(missing)


@dataclass(frozen=True, eq=False)
class CandidateFile:
    """
    A file the user has selected for upload.

    Instances compare by identity: two selections of the same path are still
    two different candidates.
    """
    path: Path
    name: str
    size: int

    @classmethod
    def from_path(cls, path) -> "CandidateFile":
        path = Path(path)
        return cls(path=path, name=path.name, size=os.path.getsize(path))

    def read_head(self, limit: int) -> str:
        """Read at most `limit` bytes from the start of the file as text."""
        with open(self.path, "rb") as f:
            chunk = f.read(limit)
        return chunk.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ValidationResult:
    candidate: CandidateFile
    error: Optional[ValidationError] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None


def check_name_and_size(candidate: CandidateFile) -> Optional[ValidationError]:
    if not has_csv_extension(candidate.name):
        return ValidationError(ValidationErrorKind.INVALID_EXTENSION, "Please select a CSV file")
    if candidate.size > MAX_FILE_BYTES:
        return ValidationError(ValidationErrorKind.FILE_TOO_LARGE, "File size should be less than 5MB")
    return None


def check_header_text(text: str) -> Optional[ValidationError]:
    """Validate the first few KiB of a CSV: a header plus at least one data line."""
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        return ValidationError(
            ValidationErrorKind.EMPTY_OR_HEADER_ONLY,
            "CSV file must contain at least a header and one data row",
        )

    missing = missing_columns(lines[0])
    if missing:
        return ValidationError(
            ValidationErrorKind.MISSING_COLUMNS,
            f"Missing required columns: {', '.join(missing)}",
            missing,
        )
    return None


class IntakeValidator:
    """
    Runs the intake checks and reports results for the latest selection only.

    When a new file is selected while an earlier header read is still pending,
    the earlier result is dropped once it arrives instead of overwriting the
    state of the newer selection.
    """

    def __init__(self, on_result: Optional[Callable[[ValidationResult], None]] = None,
                 preview_bytes: int = HEADER_PREVIEW_BYTES):
        self.on_result = on_result
        self.preview_bytes = preview_bytes
        self.current: Optional[CandidateFile] = None
        self.result: Optional[ValidationResult] = None

    async def validate(self, candidate: CandidateFile) -> Optional[ValidationResult]:
        """
        Validate a newly selected file.

        Returns:
            The ValidationResult, or None if a newer selection superseded this
            one before its checks finished.
        """
        self.current = candidate
        self.result = None

        error = check_name_and_size(candidate)
        if error is None:
            try:
                text = await asyncio.to_thread(candidate.read_head, self.preview_bytes)
            except OSError as e:
                logger.error("Error reading %s: %s", candidate.name, e)
                error = ValidationError(ValidationErrorKind.READ_ERROR, "Error reading file. Please try again.")
            else:
                error = check_header_text(text)

        if candidate is not self.current:
            logger.debug("Discarding stale validation result for %s", candidate.name)
            return None

        self.result = ValidationResult(candidate, error)
        if error is not None:
            logger.info("Validation failed for %s: %s", candidate.name, error.message)
        if self.on_result is not None:
            self.on_result(self.result)
        return self.result
