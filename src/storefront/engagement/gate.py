"""Engagement gate: the timed "watch to unlock" interaction.

A gate is created for one checkout attempt. While playing, a ticker task adds
a fixed share of progress every ``tick_interval`` seconds so that progress
reaches 100 after ``duration`` seconds of play. Reaching 100, or an external
"rendered" signal, completes the gate and fires ``on_complete`` exactly once;
whichever arrives first wins.

State Machine:
    IDLE → PLAYING ⇄ PAUSED
    PLAYING → COMPLETED
    IDLE/PLAYING/PAUSED → SKIPPED
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog

from storefront.exceptions import StateError

logger = structlog.get_logger(__name__)


class GateState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class PauseReason(Enum):
    USER = "user"
    VISIBILITY_LOST = "visibility_lost"


_TERMINAL_STATES = {GateState.COMPLETED, GateState.SKIPPED}


# ---------------------------------------------------------------------------
# Events delivered to the host
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ProgressUpdated:
    percent: float


@dataclass(frozen=True)
class GatePaused:
    reason: PauseReason
    percent: float


@dataclass(frozen=True)
class GateInterrupted:
    """The hosting view lost visibility while the gate was playing."""

    percent: float


@dataclass(frozen=True)
class GateCompleted:
    source: str  # "progress" or "rendered"


@dataclass(frozen=True)
class GateSkipped:
    percent: float


def _current_task():
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class EngagementGate:
    def __init__(
        self,
        on_complete: Callable[[], None],
        listener: Callable | None = None,
        duration: float = 10.0,
        tick_interval: float = 0.1,
    ) -> None:
        if duration <= 0 or tick_interval <= 0:
            raise ValueError("duration and tick_interval must be positive")

        self._on_complete = on_complete
        self._listener = listener
        self.duration = duration
        self.tick_interval = tick_interval
        self.step = 100.0 / (duration / tick_interval)

        self.state = GateState.IDLE
        self.progress = 0.0
        self.is_open = True
        self._completion_fired = False
        self._ticker: asyncio.Task | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL_STATES

    @property
    def completion_fired(self) -> bool:
        return self._completion_fired

    def _emit(self, event) -> None:
        if self._listener is not None:
            self._listener(event)

    # -------------------------------------------------------------------
    # Ticker
    # -------------------------------------------------------------------
    def _start_ticker(self) -> None:
        self._ticker = asyncio.get_running_loop().create_task(self._run())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done() and ticker is not _current_task():
            ticker.cancel()

    async def _run(self) -> None:
        while self.state is GateState.PLAYING:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def play(self) -> None:
        """Start or resume playing. Requires a running event loop."""
        if self.state is GateState.PLAYING:
            return
        if self.is_terminal:
            raise StateError(self.state.value, GateState.PLAYING.value)

        self.state = GateState.PLAYING
        self._start_ticker()
        logger.debug("Engagement gate playing", percent=self.progress)

    def tick(self) -> None:
        """Advance progress by one step. Ignored unless playing."""
        if self.state is not GateState.PLAYING:
            return

        self.progress = min(100.0, round(self.progress + self.step, 6))
        self._emit(ProgressUpdated(percent=self.progress))
        if self.progress >= 100.0:
            self._complete("progress")

    def pause(self, reason: PauseReason = PauseReason.USER) -> None:
        if self.state is not GateState.PLAYING:
            return

        self.state = GateState.PAUSED
        self._stop_ticker()
        self._emit(GatePaused(reason=reason, percent=self.progress))
        logger.debug("Engagement gate paused", reason=reason.value, percent=self.progress)

    def visibility_lost(self) -> None:
        """Pause because the hosting view went to the background."""
        if self.state is not GateState.PLAYING:
            return

        self.pause(PauseReason.VISIBILITY_LOST)
        self._emit(GateInterrupted(percent=self.progress))

    def skip(self) -> None:
        """Give up on the waiver. The delivery fee stays charged."""
        if self.is_terminal:
            return

        self.state = GateState.SKIPPED
        self._stop_ticker()
        self.is_open = False
        self._emit(GateSkipped(percent=self.progress))
        logger.info("Engagement gate skipped", percent=self.progress)

    def signal_rendered(self) -> None:
        """External signal that the content finished rendering."""
        self._complete("rendered")

    def _complete(self, source: str) -> None:
        if self._completion_fired or self.is_terminal:
            logger.debug("Ignoring late completion signal", source=source, state=self.state.value)
            return

        self._completion_fired = True
        self.state = GateState.COMPLETED
        self.progress = 100.0
        self._stop_ticker()
        self.is_open = False
        self._emit(GateCompleted(source=source))
        logger.info("Engagement gate completed", source=source)
        self._on_complete()

    def close(self) -> None:
        """Tear down: stop the ticker and close the interaction, keeping the state."""
        self._stop_ticker()
        self.is_open = False
