import enum
from dataclasses import dataclass
from typing import Any, Optional


class OutcomeStatus(str, enum.Enum):
    OK = "ok"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass(frozen=True)
class StoreOutcome:
    """
    Result of a storage operation that is allowed to fail softly.

    Distinguishes "nothing there" from "the operation broke" so callers can
    decide what to log while the response shape stays the same.
    """
    status: OutcomeStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "StoreOutcome":
        return cls(OutcomeStatus.OK, value=value)

    @classmethod
    def no_data(cls, value: Any = None) -> "StoreOutcome":
        return cls(OutcomeStatus.NO_DATA, value=value)

    @classmethod
    def failed(cls, error: str, value: Any = None) -> "StoreOutcome":
        return cls(OutcomeStatus.FAILED, value=value, error=error)

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def is_failure(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    def value_or(self, default: Any) -> Any:
        return self.value if self.status is OutcomeStatus.OK else default
