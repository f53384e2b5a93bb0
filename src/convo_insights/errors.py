"""Exception taxonomy for the insight pipeline.

Pipeline-fatal errors (`MalformedArchiveError`, `NoInsightsAvailableError`) stop a
job. Unit-level errors (`ExtractionFailure`, `SynthesisFailure`) are caught at the
conversation or report boundary and recorded instead of propagated.
"""

from __future__ import annotations


class InsightPipelineError(Exception):
    """Base class for all pipeline errors."""


class MalformedArchiveError(InsightPipelineError, ValueError):
    """Raised when archive bytes are not JSON or contain no conversation array."""


class ExtractionFailure(InsightPipelineError, ValueError):
    """Raised when Stage 1 cannot produce an insight for one conversation."""

    def __init__(self, conversation_id: str, reason: str) -> None:
        super().__init__(f"Extraction failed for conversation '{conversation_id}': {reason}")
        self.conversation_id = conversation_id
        self.reason = reason


class NoInsightsAvailableError(InsightPipelineError, ValueError):
    """Raised when aggregation receives zero usable insights."""


class SynthesisFailure(InsightPipelineError, ValueError):
    """Raised when one Stage 2 report cannot be synthesized or validated."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"{kind}: {reason}")
        self.kind = kind
        self.reason = reason


class NotEntitledError(InsightPipelineError, PermissionError):
    """Raised when a user without premium access requests report synthesis."""
