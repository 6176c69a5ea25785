"""Simulated vehicle driven by a SimPy timer.

The timer period is ``base_interval / speed_multiplier`` in environment time.
Whoever owns the environment advances it: tests call
``SimulationClock.advance()``, ``main.py`` runs a realtime environment so one
environment second is one wall-clock second.
"""

import logging
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta

import simpy
from simpy.events import Timeout

from navigation.models import PositionSample, Route

logger = logging.getLogger(__name__)


class TimeManager:
    """Maps SimPy time onto wall-clock datetimes for one session."""

    def __init__(self, start_time: datetime, env: simpy.Environment):
        self._start_time = start_time.astimezone(UTC)
        self._env = env
        self._origin = env.now

    @property
    def start_time(self) -> datetime:
        return self._start_time

    def elapsed_seconds(self) -> float:
        return float(self._env.now - self._origin)

    def current_time(self) -> datetime:
        return self._start_time + timedelta(seconds=self.elapsed_seconds())


class SimulationClock:
    """Periodic SimPy timer that calls ``on_tick`` once per period.

    Stopping or changing speed never interrupts the process that is
    currently running a tick; each timer process carries a generation number
    and exits as soon as it notices it has been superseded. That makes
    ``stop()`` and ``set_speed()`` safe to call from inside ``on_tick``.
    """

    def __init__(
        self,
        env: simpy.Environment,
        base_interval_seconds: float = 1.0,
        speed_multiplier: int = 1,
    ):
        if base_interval_seconds <= 0:
            raise ValueError("Base interval must be positive")
        if speed_multiplier < 1:
            raise ValueError("Speed multiplier must be a positive integer")

        self._env = env
        self._base_interval = base_interval_seconds
        self._speed_multiplier = speed_multiplier
        self._on_tick: Callable[[], None] | None = None
        self._process: simpy.Process | None = None
        self._generation = 0
        self._running = False
        self._ticks = 0

    @property
    def speed_multiplier(self) -> int:
        return self._speed_multiplier

    @property
    def period(self) -> float:
        return self._base_interval / self._speed_multiplier

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self, on_tick: Callable[[], None]) -> None:
        if self._running:
            raise RuntimeError("Simulation clock already running")
        self._on_tick = on_tick
        self._running = True
        self._spawn()

    def stop(self) -> None:
        """Stop ticking. No tick fires after this returns."""
        if not self._running:
            return
        self._running = False
        self._generation += 1
        self._interrupt_waiting()
        self._process = None

    def set_speed(self, multiplier: int) -> None:
        """Change the tick period, restarting the timer if it is running."""
        if multiplier < 1:
            raise ValueError("Speed multiplier must be a positive integer")

        previous = self._speed_multiplier
        self._speed_multiplier = multiplier
        logger.info(f"Simulation speed changed: {previous}x -> {multiplier}x")

        if self._running:
            self._generation += 1
            self._interrupt_waiting()
            self._spawn()

    def advance(self, seconds: float) -> None:
        """Run the environment forward by ``seconds`` of simulated time."""
        if seconds <= 0:
            raise ValueError("Can only advance by a positive duration")
        self._env.run(until=self._env.now + seconds)

    def _spawn(self) -> None:
        self._process = self._env.process(self._run(self._generation))

    def _interrupt_waiting(self) -> None:
        # Only a process parked on its timeout can take an interrupt; one that
        # has not started yet, or is the caller, just sees the new generation.
        process = self._process
        if (
            process is not None
            and process.is_alive
            and process is not self._env.active_process
            and isinstance(process.target, Timeout)
        ):
            process.interrupt("superseded")

    def _run(self, generation: int) -> Generator[simpy.Event]:
        while self._running and generation == self._generation:
            try:
                yield self._env.timeout(self.period)
            except simpy.Interrupt:
                return

            if not self._running or generation != self._generation:
                return

            self._ticks += 1
            if self._on_tick is not None:
                self._on_tick()


class SimulatedVehicle:
    """Virtual position that steps along the route one point per tick."""

    def __init__(self, route: Route, time_manager: TimeManager, accuracy_meters: float = 0.0):
        self._route = route
        self._time_manager = time_manager
        self._accuracy_meters = accuracy_meters
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def at_destination(self) -> bool:
        return self._index >= self._route.last_index

    def current_sample(self) -> PositionSample:
        return PositionSample(
            coordinate=self._route.points[self._index],
            accuracy_meters=self._accuracy_meters,
            timestamp=self._time_manager.current_time(),
        )

    def next_sample(self) -> PositionSample | None:
        """Move to the next route point and report it; None once at the end."""
        if self.at_destination:
            return None
        self._index += 1
        return self.current_sample()
