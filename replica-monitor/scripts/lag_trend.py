"""
Replication lag trend estimation
Tracks how Seconds_Behind_Source moves between checks and projects catch-up times,
the same way a trip computer shows instant and average fuel consumption
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass
class LagState:
    """Mutable lag history owned by a single LagTrendEstimator"""
    last_seconds_behind: Optional[int] = None
    last_check_time: Optional[datetime] = None
    instant_rate: float = 0.0  # lag change per second over the last interval
    instant_eta: Optional[datetime] = None

    # Long-term anchor, set once on the first sample
    start_seconds_behind: Optional[int] = None
    start_time: Optional[datetime] = None
    average_rate: float = 0.0


@dataclass(frozen=True)
class TrendReport:
    """
    Lag figures derived from one sample

    Rates are seconds of lag gained per second of wall time: negative while the
    replica is catching up, positive while it falls behind, zero without signal.
    """
    seconds_behind: int
    observed_at: datetime
    instant_rate: float
    average_rate: float
    instant_eta: Optional[datetime] = None
    average_eta: Optional[datetime] = None

    @property
    def caught_up(self) -> bool:
        return self.seconds_behind == 0

    @property
    def instant_seconds_to_catch_up(self) -> Optional[float]:
        if self.instant_eta is None:
            return None
        return (self.instant_eta - self.observed_at).total_seconds()

    @property
    def average_seconds_to_catch_up(self) -> Optional[float]:
        if self.average_eta is None:
            return None
        return (self.average_eta - self.observed_at).total_seconds()


def project_catch_up(seconds_behind: int, rate: float, now: datetime) -> datetime:
    """
    Instant at which lag reaches zero if the (negative) rate holds

    Projections past the last representable instant are clamped to datetime.max.
    """
    seconds_to_catch_up = seconds_behind / -rate
    try:
        return now + timedelta(seconds=seconds_to_catch_up)
    except OverflowError:
        return datetime.max.replace(tzinfo=now.tzinfo)


class LagTrendEstimator:
    """
    Derives short-term and long-term lag rates from successive samples

    One estimator per monitored replica; update() mutates the owned LagState and
    must not be called concurrently.
    """

    def __init__(self):
        self._state = LagState()

    @property
    def state(self) -> LagState:
        return self._state

    def update(self, sample: int, now: datetime) -> TrendReport:
        """
        Ingest one Seconds_Behind_Source sample

        Args:
            sample: Observed lag in seconds, >= 0
            now: When the sample was taken

        Returns:
            TrendReport with current rates and ETAs
        """
        if sample < 0:
            raise ValueError(f"seconds behind must be >= 0, got {sample}")

        state = self._state

        if state.start_time is None:
            state.start_seconds_behind = sample
            state.start_time = now

        if state.last_check_time is not None:
            time_diff = (now - state.last_check_time).total_seconds()
            if time_diff > 0:
                state.instant_rate = (sample - state.last_seconds_behind) / time_diff

            if state.instant_rate < 0:
                state.instant_eta = project_catch_up(sample, state.instant_rate, now)
            else:
                state.instant_eta = None

        total_elapsed = (now - state.start_time).total_seconds()
        if total_elapsed > 0:
            state.average_rate = (sample - state.start_seconds_behind) / total_elapsed

        average_eta = None
        if state.average_rate < 0 and sample > 0:
            average_eta = project_catch_up(sample, state.average_rate, now)

        state.last_seconds_behind = sample
        state.last_check_time = now

        return TrendReport(
            seconds_behind=sample,
            observed_at=now,
            instant_rate=state.instant_rate,
            average_rate=state.average_rate,
            instant_eta=state.instant_eta,
            average_eta=average_eta,
        )
