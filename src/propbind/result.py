"""Success/failure carrier used by the retrieval and instantiation steps."""

from dataclasses import dataclass
from typing import Any, Optional

__all__ = ["ProcessingResult"]


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of retrieving or building a single value.

    A successful result may hold ``None``: that is an explicit null, distinct
    from a failure. Code that has "no data, and that's acceptable" returns
    ``None`` instead of a ``ProcessingResult`` so the declared default applies.

    Attributes:
        success: Whether the processing succeeded.
        value: The produced value, meaningful only on success.
        failure_reason: Human readable reason, meaningful only on failure.
    """

    success: bool
    value: Any = None
    failure_reason: Optional[str] = None

    @staticmethod
    def of(value: Any) -> "ProcessingResult":
        return ProcessingResult(True, value)

    @staticmethod
    def failure(reason: str) -> "ProcessingResult":
        return ProcessingResult(False, None, reason)
