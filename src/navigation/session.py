"""Navigation session state machine.

A session drives one ``ProgressTracker`` from either a live position stream
or a simulated vehicle, notifies listeners of every transition and every
processed sample, and produces a ``TripSummary`` when it completes.

Sessions are single-use: once COMPLETED, navigating again (even along the
same route) needs a new session.
"""

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import simpy
from pydantic import BaseModel, ConfigDict

from core.exceptions import ConfigurationError, InvalidTransition, PositionUnavailable
from nav_logging import log_session_context, update_log_context
from navigation.models import (
    NavigationMode,
    PositionSample,
    ProgressSnapshot,
    Route,
    TripSummary,
)
from navigation.position_source import PositionStream, Unsubscribe
from navigation.route import validate_route
from navigation.simulation import SimulatedVehicle, SimulationClock, TimeManager
from navigation.speed import SpeedEstimator
from navigation.tracker import ProgressTracker, is_arrived
from settings import NavigationSettings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Navigation session lifecycle states."""

    IDLE = "idle"
    ROUTING = "routing"
    NAVIGATING = "navigating"
    SIMULATING = "simulating"
    PAUSED = "paused"
    COMPLETED = "completed"


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {
        SessionState.ROUTING,
        SessionState.NAVIGATING,
        SessionState.SIMULATING,
        SessionState.COMPLETED,
    },
    SessionState.ROUTING: {
        SessionState.IDLE,
        SessionState.NAVIGATING,
        SessionState.SIMULATING,
        SessionState.COMPLETED,
    },
    # NAVIGATING -> IDLE only when the stream never produced a first fix
    SessionState.NAVIGATING: {SessionState.PAUSED, SessionState.IDLE, SessionState.COMPLETED},
    SessionState.SIMULATING: {SessionState.PAUSED, SessionState.COMPLETED},
    SessionState.PAUSED: {
        SessionState.NAVIGATING,
        SessionState.SIMULATING,
        SessionState.COMPLETED,
    },
    SessionState.COMPLETED: set(),
}

RUNNING_STATES = frozenset({SessionState.NAVIGATING, SessionState.SIMULATING})


class SessionEventType(str, Enum):
    STATE_CHANGED = "state_changed"
    PROGRESS = "progress"
    SPEED_CHANGED = "speed_changed"
    ERROR = "error"
    COMPLETED = "completed"


class SessionEvent(BaseModel):
    """Notification delivered to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    event_type: SessionEventType
    session_id: str
    state: SessionState
    timestamp: datetime
    previous_state: SessionState | None = None
    snapshot: ProgressSnapshot | None = None
    summary: TripSummary | None = None
    speed_kph: float | None = None
    speed_multiplier: int | None = None
    error: str | None = None
    error_type: str | None = None


SessionListener = Callable[[SessionEvent], None]


class NavigationSession:
    """Single-use navigation session.

    Args:
        position_stream: Live position source; required for LIVE mode only
        settings: Navigation settings; defaults to NavigationSettings()
        env: SimPy environment for the simulated vehicle; a fresh one is
            created when omitted
        clock: Wall-clock source, injectable for tests
        session_id: Identifier used in events and log context
    """

    def __init__(
        self,
        position_stream: PositionStream | None = None,
        settings: NavigationSettings | None = None,
        env: simpy.Environment | None = None,
        clock: Callable[[], datetime] | None = None,
        session_id: str | None = None,
    ):
        self._settings = settings or NavigationSettings()
        self._position_stream = position_stream
        self._env = env or simpy.Environment()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._session_id = session_id or str(uuid4())

        self._state = SessionState.IDLE
        self._mode: NavigationMode | None = None
        self._route: Route | None = None
        self._tracker: ProgressTracker | None = None
        self._snapshot: ProgressSnapshot | None = None
        self._summary: TripSummary | None = None
        self._started_at: datetime | None = None
        self._received_first_sample = False
        self._stopping = False

        self._listeners: list[SessionListener] = []
        self._speed = SpeedEstimator(
            smoothing_factor=self._settings.speed_smoothing_factor,
            max_speed_kph=self._settings.max_speed_kph,
        )

        # Live mode
        self._unsubscribe: Unsubscribe | None = None
        self._process_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending_sample: PositionSample | None = None

        # Simulated mode
        self._time_manager: TimeManager | None = None
        self._sim_clock: SimulationClock | None = None
        self._vehicle: SimulatedVehicle | None = None
        self._speed_multiplier = self._settings.default_speed_multiplier

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> NavigationMode | None:
        return self._mode

    @property
    def route(self) -> Route | None:
        return self._route

    @property
    def snapshot(self) -> ProgressSnapshot | None:
        return self._snapshot

    @property
    def summary(self) -> TripSummary | None:
        return self._summary

    @property
    def speed_multiplier(self) -> int:
        return self._speed_multiplier

    @property
    def simulation_clock(self) -> SimulationClock | None:
        return self._sim_clock

    @property
    def vehicle_index(self) -> int | None:
        return self._vehicle.index if self._vehicle else None

    @property
    def is_completed(self) -> bool:
        return self._state == SessionState.COMPLETED

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: SessionEventType, **fields: object) -> None:
        event = SessionEvent(
            event_type=event_type,
            session_id=self._session_id,
            state=self._state,
            timestamp=self._now(),
            **fields,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener error on {event_type.value}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def begin_routing(self) -> None:
        """IDLE -> ROUTING while the presentation layer waits for a route."""
        with self._log_context():
            self._transition(SessionState.ROUTING)

    def cancel_routing(self) -> None:
        """ROUTING -> IDLE when the route provider failed or found nothing."""
        if self._state != SessionState.ROUTING:
            raise InvalidTransition(
                f"Cannot cancel routing from {self._state.value}",
                details={"state": self._state.value},
            )
        with self._log_context():
            self._transition(SessionState.IDLE)

    def start(
        self,
        route: Route,
        mode: NavigationMode = NavigationMode.LIVE,
        speed_multiplier: int | None = None,
    ) -> None:
        """Begin navigating ``route`` from IDLE or ROUTING.

        Raises:
            InvalidTransition: Session is not IDLE or ROUTING
            EmptyRoute, MalformedGeometry, ValidationError: Route is unusable
            ConfigurationError: LIVE mode without a position stream
            PositionUnavailable: The stream refused the subscription
            ValueError: Unsupported speed multiplier
        """
        if self._state not in (SessionState.IDLE, SessionState.ROUTING):
            raise InvalidTransition(
                f"Cannot start a session in state {self._state.value}",
                details={"state": self._state.value},
            )
        validate_route(route)
        if mode == NavigationMode.LIVE and self._position_stream is None:
            raise ConfigurationError("Live navigation requires a position stream")
        if speed_multiplier is not None:
            self._check_multiplier(speed_multiplier)
            self._speed_multiplier = speed_multiplier

        with log_session_context(self._session_id, mode=mode.value, state=self._state.value):
            self._route = route
            self._mode = mode
            self._tracker = ProgressTracker(route, self._settings.off_route_threshold_m)
            self._snapshot = None
            self._received_first_sample = False
            self._speed.reset()

            if mode == NavigationMode.LIVE:
                self._started_at = self._now()
                self._transition(SessionState.NAVIGATING)
                try:
                    self._activate_source()
                except Exception:
                    self._reset_to_idle()
                    raise
            else:
                self._time_manager = TimeManager(self._clock(), self._env)
                self._vehicle = SimulatedVehicle(route, self._time_manager)
                self._sim_clock = SimulationClock(
                    self._env,
                    base_interval_seconds=self._settings.simulation_base_interval_seconds,
                    speed_multiplier=self._speed_multiplier,
                )
                self._started_at = self._now()
                self._transition(SessionState.SIMULATING)
                self._activate_source()

            logger.info(
                f"Session started: mode={mode.value}, points={len(route.points)}, "
                f"instructions={len(route.instructions)}, "
                f"distance={route.total_distance_meters:.0f}m"
            )

    def pause(self) -> None:
        """Detach the position source, keeping the last snapshot."""
        if self._state not in RUNNING_STATES:
            raise InvalidTransition(
                f"Cannot pause from {self._state.value}",
                details={"state": self._state.value},
            )
        with self._log_context():
            self._detach_source()
            self._speed.reset()
            self._transition(SessionState.PAUSED)
            logger.info("Session paused")

    def resume(self) -> None:
        """Re-attach the position source of the session's mode."""
        if self._state != SessionState.PAUSED:
            raise InvalidTransition(
                f"Cannot resume from {self._state.value}",
                details={"state": self._state.value},
            )
        with self._log_context():
            if self._mode == NavigationMode.LIVE:
                self._transition(SessionState.NAVIGATING)
                try:
                    self._activate_source()
                except Exception:
                    self._transition(SessionState.PAUSED)
                    raise
            else:
                self._transition(SessionState.SIMULATING)
                self._activate_source()
            logger.info("Session resumed")

    def stop(self) -> TripSummary | None:
        """Stop navigating and complete the session.

        Safe to call from listeners and tick handlers, and idempotent: once
        the session is COMPLETED further calls return the existing summary
        untouched. Stopping before start() completes without a summary.
        """
        if self._state == SessionState.COMPLETED or self._stopping:
            return self._summary

        self._stopping = True
        with self._log_context():
            self._detach_source()
            if self._started_at is not None and self._route is not None:
                self._summary = self._build_summary()
            self._transition(SessionState.COMPLETED)
            self._emit(SessionEventType.COMPLETED, summary=self._summary)

            if self._summary is not None:
                logger.info(
                    f"Session completed: elapsed={self._summary.elapsed_seconds:.1f}s, "
                    f"average_speed={self._summary.average_speed_kph:.1f}km/h"
                )
            else:
                logger.info("Session completed before navigation started")
        return self._summary

    def change_speed(self, multiplier: int) -> None:
        """Change the simulated vehicle's speed without moving it."""
        if self._mode != NavigationMode.SIMULATED or self._state not in (
            SessionState.SIMULATING,
            SessionState.PAUSED,
        ):
            raise InvalidTransition(
                f"Cannot change speed in state {self._state.value}"
                + (f" ({self._mode.value} mode)" if self._mode else ""),
                details={"state": self._state.value},
            )
        self._check_multiplier(multiplier)

        previous = self._speed_multiplier
        self._speed_multiplier = multiplier
        assert self._sim_clock is not None
        self._sim_clock.set_speed(multiplier)
        self._emit(SessionEventType.SPEED_CHANGED, speed_multiplier=multiplier)
        logger.debug(f"Speed multiplier {previous}x -> {multiplier}x")

    # ------------------------------------------------------------------
    # Sample processing
    # ------------------------------------------------------------------

    def _on_live_sample(self, sample: PositionSample) -> None:
        """Serialize live samples, keeping at most one waiting.

        A sample that arrives while another is being processed (from another
        thread, or re-entrantly from a listener) replaces any earlier waiting
        sample and is processed right after the current one.
        """
        with self._pending_lock:
            self._pending_sample = sample

        while True:
            if not self._process_lock.acquire(blocking=False):
                return
            try:
                while True:
                    with self._pending_lock:
                        next_sample, self._pending_sample = self._pending_sample, None
                    if next_sample is None:
                        break
                    self._handle_sample(next_sample)
            finally:
                self._process_lock.release()

            with self._pending_lock:
                if self._pending_sample is None:
                    return

    def _on_stream_error(self, error: Exception) -> None:
        if self._state != SessionState.NAVIGATING:
            return
        with self._log_context():
            if isinstance(error, PositionUnavailable) and not self._received_first_sample:
                logger.warning(f"No position fix, returning to idle: {error}")
                self._reset_to_idle()
            else:
                logger.warning(f"Position stream error: {error}")
            self._emit(
                SessionEventType.ERROR,
                error=str(error),
                error_type=type(error).__name__,
            )

    def _on_tick(self) -> None:
        if self._state != SessionState.SIMULATING:
            return
        assert self._vehicle is not None
        sample = self._vehicle.next_sample()
        if sample is None:
            self.stop()
            return

        self._handle_sample(sample)

        if self._state == SessionState.SIMULATING and self._vehicle.at_destination:
            logger.info("Simulated vehicle reached the end of the route")
            self.stop()

    def _handle_sample(self, sample: PositionSample) -> None:
        if self._state not in RUNNING_STATES:
            logger.debug(f"Ignoring sample in state {self._state.value}")
            return

        assert self._tracker is not None
        with self._log_context():
            try:
                snapshot = self._tracker.advance(sample, self._snapshot)
                speed_kph = self._speed.update(sample)
            except Exception as e:
                logger.warning(f"Sample processing failed, keeping previous snapshot: {e}")
                self._emit(
                    SessionEventType.ERROR,
                    snapshot=self._snapshot,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return

            self._snapshot = snapshot
            self._received_first_sample = True

            if snapshot.is_off_route:
                logger.debug(
                    f"Off route by {snapshot.distance_from_route_meters:.0f}m "
                    f"near point {snapshot.closest_point_index}"
                )

            self._emit(SessionEventType.PROGRESS, snapshot=snapshot, speed_kph=speed_kph)

            if self._state in RUNNING_STATES and is_arrived(
                snapshot, self._settings.arrival_threshold_m
            ):
                logger.info(
                    f"Arrived: {snapshot.remaining_distance_meters:.1f}m remaining "
                    f"(threshold {self._settings.arrival_threshold_m}m)"
                )
                self.stop()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise InvalidTransition(
                f"Invalid transition from {self._state.value} to {new_state.value}",
                details={"from": self._state.value, "to": new_state.value},
            )
        previous = self._state
        self._state = new_state
        update_log_context(state=new_state.value)
        logger.debug(f"Session state {previous.value} -> {new_state.value}")
        self._emit(SessionEventType.STATE_CHANGED, previous_state=previous)

    def _log_context(self):
        mode = self._mode.value if self._mode is not None else None
        return log_session_context(self._session_id, mode=mode, state=self._state.value)

    def _activate_source(self) -> None:
        # A state_changed listener may already have paused or stopped the session
        if self._state == SessionState.NAVIGATING:
            self._attach_stream()
        elif self._state == SessionState.SIMULATING:
            assert self._sim_clock is not None
            if not self._sim_clock.is_running:
                self._sim_clock.start(self._on_tick)

    def _attach_stream(self) -> None:
        assert self._position_stream is not None
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._position_stream.subscribe(
            self._on_live_sample, self._on_stream_error
        )

    def _detach_source(self) -> None:
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()
        with self._pending_lock:
            self._pending_sample = None
        if self._sim_clock is not None:
            self._sim_clock.stop()

    def _reset_to_idle(self) -> None:
        self._detach_source()
        self._route = None
        self._tracker = None
        self._mode = None
        self._started_at = None
        self._snapshot = None
        self._transition(SessionState.IDLE)

    def _check_multiplier(self, multiplier: int) -> None:
        allowed = self._settings.allowed_speed_multipliers
        if multiplier not in allowed:
            raise ValueError(f"Speed multiplier must be one of {allowed}, got {multiplier}")

    def _now(self) -> datetime:
        if self._mode == NavigationMode.SIMULATED and self._time_manager is not None:
            return self._time_manager.current_time()
        return self._clock()

    def _build_summary(self) -> TripSummary:
        assert self._route is not None and self._started_at is not None
        ended_at = self._now()
        # Elapsed time floored at one second, average capped like the live speed readout
        elapsed_hours = max((ended_at - self._started_at).total_seconds(), 1.0) / 3600
        total_m = self._route.total_distance_meters
        travelled_m = (
            max(total_m - self._snapshot.remaining_distance_meters, 0.0)
            if self._snapshot is not None
            else 0.0
        )
        return TripSummary(
            started_at=self._started_at,
            ended_at=ended_at,
            total_distance_meters=total_m,
            planned_duration_millis=self._route.total_duration_millis,
            average_speed_kph=min((total_m / 1000) / elapsed_hours, self._settings.max_speed_kph),
            distance_travelled_meters=travelled_m,
            mode=self._mode or NavigationMode.LIVE,
        )
