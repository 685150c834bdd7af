"""Error taxonomy for the review analysis pipeline."""

from __future__ import annotations


class ReviewPulseError(Exception):
    """Base class for every error raised by reviewpulse."""


class FatalInputError(ReviewPulseError):
    """Raised when a run is requested with unusable input (no app, bad date)."""


# ── Review sources ─────────────────────────────────────────────────────────


class SourceError(ReviewPulseError):
    """The live review source could not deliver reviews."""


class SourceUnavailable(SourceError):
    """Transport, auth or configuration failure while scraping."""


class EmptyResult(SourceError):
    """The scrape succeeded but yielded no reviews."""


# ── External services (classifier / deduplicator) ─────────────────────────


class ServiceError(ReviewPulseError):
    """A call to an external LLM-backed service failed.

    ``reason`` is a short machine-readable code such as ``rate_limited``.
    """

    reason = "service_error"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        if reason:
            self.reason = reason


class ServiceUnavailable(ServiceError):
    reason = "unavailable"


class ClassifierUnavailable(ServiceUnavailable):
    pass


class DeduplicatorUnavailable(ServiceUnavailable):
    pass


class RateLimited(ServiceError):
    reason = "rate_limited"


class QuotaExhausted(ServiceError):
    reason = "quota_exhausted"


class MalformedResponse(ServiceError):
    reason = "malformed_response"


# ── Persistence / run control ─────────────────────────────────────────────


class PersistenceFailure(ReviewPulseError):
    """The report could not be written to the report store."""


class RunInProgressError(ReviewPulseError):
    """A new run was requested while another one is still active."""


class AnalysisCancelled(ReviewPulseError):
    """The run was cancelled through its cancel token."""


class InvalidTransitionError(ReviewPulseError):
    """A status transition not allowed by the pipeline state machine."""
