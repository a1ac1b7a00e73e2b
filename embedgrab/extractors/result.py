from dataclasses import dataclass
from typing import Optional

from embedgrab.core.entities import ExtractedStreamInfo
from embedgrab.core.errors import ExtractionFailure, FailureKind

@dataclass(frozen=True)
class ExtractionOutcome:
    """
    Unified result contract for all stream extractors.

    Exactly one of `info` / `failure` is set. Failures are returned, never
    raised; the caller decides how to present them and whether to offer a
    fresh extraction.
    """
    info: Optional[ExtractedStreamInfo] = None
    failure: Optional[ExtractionFailure] = None
    attempts: int = 0

    def __post_init__(self):
        if (self.info is None) == (self.failure is None):
            raise ValueError("ExtractionOutcome needs exactly one of info or failure")

    @property
    def ok(self) -> bool:
        return self.info is not None

    @property
    def kind(self) -> Optional[FailureKind]:
        return self.failure.kind if self.failure else None

    @classmethod
    def success(cls, info: ExtractedStreamInfo, attempts: int) -> "ExtractionOutcome":
        return cls(info=info, attempts=attempts)

    @classmethod
    def fail(cls, failure: ExtractionFailure, attempts: int) -> "ExtractionOutcome":
        return cls(failure=failure, attempts=attempts)
