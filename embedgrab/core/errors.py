"""Failure taxonomy for stream extraction."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureKind(Enum):
    CONTENT_ABSENT = "content_absent"
    NO_CANDIDATE = "no_candidate"
    NETWORK_UNREACHABLE = "network_unreachable"
    WRONG_IP = "wrong_ip"
    VALIDATION_FAILED = "validation_failed"
    RETRIES_EXHAUSTED = "retries_exhausted"

    @property
    def retryable(self) -> bool:
        return self in (FailureKind.NETWORK_UNREACHABLE, FailureKind.WRONG_IP)


@dataclass(frozen=True)
class ExtractionFailure:
    kind: FailureKind
    message: str
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        return self.message


class ExtractionCancelled(Exception):
    """Raised when the caller cancels an extraction mid-flight."""


class UnsupportedUrlError(ValueError):
    """Raised when no registered extractor accepts a URL."""
