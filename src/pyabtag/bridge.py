"""
Bridge loop: poll a Modbus RTU flow instrument, correct its rate to base conditions
and write raw and corrected rates to controller tags on a fixed cadence.

One cycle runs POLLING -> CORRECTING -> WRITING -> REPORTING, then SLEEPING until
the next. Transient faults (timeouts, busy slaves, non-finite corrections) are
retried with bounded backoff; anything else, or an exhausted retry budget, moves
the loop to FAULTED and re-raises; a faulted loop refuses to run again. Setting
the cancel event stops the loop between cycles or during a wait.
"""

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Callable

from .client import TagClient
from .errors import ComputationFault, ProtocolIOError, PyABTagError
from .fieldbus import FieldBusClient
from .flow import correct_rate, raw_rate_per_day
from .types import BridgeConfig, BridgeState, Cycle, FlowSample

logger = logging.getLogger(__name__)

Reporter = Callable[[Cycle], None]


def format_status(cycle: Cycle) -> str:
    """One status line: timestamp, velocity, pressure, temperature, corrected rate."""
    s = cycle.sample
    ts = cycle.started_at.isoformat(timespec="seconds")
    if s is None:
        return f"{ts} #{cycle.sequence} (no sample)"
    return (
        f"{ts} #{cycle.sequence} "
        f"velocity={s.velocity:.2f} m/s "
        f"pressure={s.pressure:.2f} barg "
        f"temperature={s.temperature:.2f} °C "
        f"rate={s.corrected_rate:.2f} Sm³/d"
    )


def _log_reporter(cycle: Cycle) -> None:
    logger.info("%s", format_status(cycle))


def is_transient(error: Exception) -> bool:
    if isinstance(error, ProtocolIOError):
        return error.transient
    return isinstance(error, ComputationFault)


class BridgeLoop:
    """
    Owns a connected TagClient and FieldBusClient for its lifetime and runs the
    measurement cycle against them. Single-threaded; cycles never overlap.
    """

    def __init__(
        self,
        tags: TagClient,
        bus: FieldBusClient,
        config: BridgeConfig,
        *,
        reporter: Reporter | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._tags = tags
        self._bus = bus
        self._config = config
        self._reporter = reporter or _log_reporter
        self._cancel = cancel if cancel is not None else threading.Event()
        self._sequence = 0
        self.state = BridgeState.IDLE
        self.last_error: Exception | None = None

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def stop(self) -> None:
        """Request the loop to stop; interrupts a pending sleep or backoff."""
        self._cancel.set()

    def _enter(self, state: BridgeState) -> None:
        logger.debug("Bridge %s -> %s", self.state.value, state.value)
        self.state = state

    def _check_not_faulted(self) -> None:
        if self.state is BridgeState.FAULTED:
            raise PyABTagError(f"Bridge is faulted ({self.last_error}); start a new BridgeLoop")

    def poll(self) -> tuple[float, float, float, float]:
        """Read velocity and rate registers, then pressure and temperature tags."""
        cfg = self._config
        velocity = self._bus.read_pair(cfg.velocity_register).decode()
        rate = self._bus.read_pair(cfg.rate_register).decode()
        pressure = self._tags.read_real(cfg.pressure_tag)
        temperature = self._tags.read_real(cfg.temperature_tag)
        return velocity, rate, pressure, temperature

    def correct(self, velocity: float, rate: float, pressure: float, temperature: float) -> FlowSample:
        cfg = self._config
        corrected = correct_rate(velocity, cfg.diameter_in, pressure, temperature, cfg.composition)
        if not math.isfinite(corrected):
            raise ComputationFault(
                f"Non-finite corrected rate {corrected} "
                f"(velocity={velocity}, pressure={pressure} barg, temperature={temperature} °C)",
                inputs={"velocity": velocity, "pressure": pressure, "temperature": temperature},
            )
        return FlowSample(
            velocity=velocity,
            raw_rate=raw_rate_per_day(rate),
            pressure=pressure,
            temperature=temperature,
            corrected_rate=corrected,
        )

    def write(self, sample: FlowSample) -> None:
        """Write raw then corrected rate; an earlier write stays applied if a later one fails."""
        self._tags.write_real(self._config.raw_rate_tag, sample.raw_rate)
        self._tags.write_real(self._config.base_rate_tag, sample.corrected_rate)

    def run_cycle(self) -> Cycle:
        """Run exactly one poll/correct/write/report cycle."""
        self._check_not_faulted()
        self._sequence += 1
        started_at = datetime.now(timezone.utc)

        self._enter(BridgeState.POLLING)
        velocity, rate, pressure, temperature = self.poll()

        self._enter(BridgeState.CORRECTING)
        sample = self.correct(velocity, rate, pressure, temperature)

        self._enter(BridgeState.WRITING)
        self.write(sample)

        self._enter(BridgeState.REPORTING)
        cycle = Cycle(sequence=self._sequence, started_at=started_at, sample=sample)
        self._reporter(cycle)
        return cycle

    def run(self, max_cycles: int | None = None) -> int:
        """
        Run cycles until cancelled, `max_cycles` complete, or a fault is fatal.
        Returns the number of completed cycles.
        """
        self._check_not_faulted()
        policy = self._config.retry
        completed = 0
        failures = 0
        while not self.cancelled and (max_cycles is None or completed < max_cycles):
            try:
                self.run_cycle()
            except (ProtocolIOError, ComputationFault) as e:
                self.last_error = e
                if not is_transient(e) or failures >= policy.max_attempts:
                    self._enter(BridgeState.FAULTED)
                    logger.error("Bridge faulted on cycle %d: %s", self._sequence, e)
                    raise
                failures += 1
                delay = policy.delay(failures)
                self._enter(BridgeState.RETRYING)
                logger.warning(
                    "Cycle %d failed (%s); retry %d/%d in %.2fs",
                    self._sequence,
                    e,
                    failures,
                    policy.max_attempts,
                    delay,
                )
                self._cancel.wait(delay)
                continue

            failures = 0
            completed += 1
            if max_cycles is not None and completed >= max_cycles:
                break
            self._enter(BridgeState.SLEEPING)
            self._cancel.wait(self._config.interval_s)

        self._enter(BridgeState.STOPPED)
        return completed
