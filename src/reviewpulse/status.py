"""Pipeline state machine and cancellation token."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from reviewpulse.exceptions import AnalysisCancelled, InvalidTransitionError
from reviewpulse.models import Phase, PipelineStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[PipelineStatus], None]

ACTIVE_PHASES: frozenset[Phase] = frozenset(
    {Phase.FETCHING, Phase.ANALYZING, Phase.DEDUPLICATING}
)
TERMINAL_PHASES: frozenset[Phase] = frozenset(
    {Phase.COMPLETE, Phase.ERROR, Phase.CANCELLED}
)

# Phase → phases it may move to. Staying in a phase (progress update) is
# always allowed for active phases.
_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.IDLE: frozenset({Phase.FETCHING}),
    Phase.FETCHING: frozenset({Phase.ANALYZING, Phase.ERROR, Phase.CANCELLED}),
    Phase.ANALYZING: frozenset({Phase.DEDUPLICATING, Phase.ERROR, Phase.CANCELLED}),
    Phase.DEDUPLICATING: frozenset({Phase.COMPLETE, Phase.ERROR, Phase.CANCELLED}),
    Phase.COMPLETE: frozenset({Phase.FETCHING}),
    Phase.ERROR: frozenset({Phase.FETCHING}),
    Phase.CANCELLED: frozenset({Phase.FETCHING}),
}


class CancelToken:
    """Thread-safe flag checked by the pipeline between steps."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled("Analysis cancelled")


class StatusTracker:
    """Holds the current :class:`PipelineStatus` and notifies listeners.

    Progress never goes backwards within a run; a lower value is clamped to
    the previous one. Entering ``fetching`` starts a new run and resets it.
    """

    def __init__(self) -> None:
        self._status = PipelineStatus()
        self._listeners: list[StatusListener] = []
        self._lock = threading.Lock()

    @property
    def status(self) -> PipelineStatus:
        return self._status

    @property
    def phase(self) -> Phase:
        return self._status.phase

    @property
    def active(self) -> bool:
        return self._status.phase in ACTIVE_PHASES

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def update(
        self,
        phase: Phase,
        message: str,
        progress: int | None = None,
        current_day: str | None = None,
    ) -> PipelineStatus:
        with self._lock:
            previous = self._status
            if phase != previous.phase or phase not in ACTIVE_PHASES:
                allowed = _TRANSITIONS.get(previous.phase, frozenset())
                if phase not in allowed:
                    raise InvalidTransitionError(
                        f"Cannot move from {previous.phase.value} to {phase.value}"
                    )

            new_run = phase == Phase.FETCHING and previous.phase not in ACTIVE_PHASES
            floor = 0 if new_run else previous.progress
            if progress is None:
                progress = floor
            if phase not in (Phase.ERROR, Phase.CANCELLED):
                progress = max(progress, floor)
            progress = min(max(progress, 0), 100)

            self._status = PipelineStatus(
                phase=phase,
                message=message,
                progress=progress,
                current_day=current_day,
            )
            status = self._status

        logger.debug("Status: %s %d%% %s", status.phase.value, status.progress, status.message)
        for listener in list(self._listeners):
            listener(status)
        return status

    def fail(self, message: str) -> PipelineStatus:
        return self.update(Phase.ERROR, message, progress=0)

    def cancel(self, message: str = "Analysis cancelled") -> PipelineStatus:
        return self.update(Phase.CANCELLED, message, progress=self._status.progress)

    def complete(self, message: str, progress: int = 100) -> PipelineStatus:
        return self.update(Phase.COMPLETE, message, progress=progress)

    def reset(self) -> PipelineStatus:
        """Return to ``idle``; not allowed while a run is active."""
        with self._lock:
            if self._status.phase in ACTIVE_PHASES:
                raise InvalidTransitionError(
                    f"Cannot reset while {self._status.phase.value}"
                )
            self._status = PipelineStatus()
            status = self._status
        for listener in list(self._listeners):
            listener(status)
        return status

    def restore(self, message: str) -> PipelineStatus:
        """Show a stored report: jump straight to ``complete`` at 100%."""
        with self._lock:
            if self._status.phase in ACTIVE_PHASES:
                raise InvalidTransitionError(
                    f"Cannot load a report while {self._status.phase.value}"
                )
            self._status = PipelineStatus(phase=Phase.COMPLETE, message=message, progress=100)
            status = self._status
        for listener in list(self._listeners):
            listener(status)
        return status
