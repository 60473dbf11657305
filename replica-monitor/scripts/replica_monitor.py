"""
Replica poll/detect/react loop
Contains CycleResult, the Presenter protocol and the ReplicaMonitor control loop
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from threading import Event
from typing import Optional, Protocol

from db_config import MONITORING_INTERVAL_SECONDS
from error_matcher import ErrorMatcher
from lag_trend import LagTrendEstimator, TrendReport
from recovery import RecoveryOutcome
from replica_status import StatusFetchError, StatusSnapshot

logger = logging.getLogger(__name__)


class LoopState(Enum):
    IDLE = "idle"
    POLLING = "polling"
    REPORTING = "reporting"
    SLEEPING = "sleeping"
    RECOVERING = "recovering"


class CycleStatus(Enum):
    OK = "ok"
    FETCH_FAILED = "fetch_failed"
    NO_REPLICA_STATUS = "no_replica_status"


@dataclass(frozen=True)
class CycleResult:
    """Everything one poll cycle observed"""
    checked_at: datetime
    status: CycleStatus
    snapshot: Optional[StatusSnapshot] = None
    trend: Optional[TrendReport] = None
    matched: bool = False
    matched_pattern: Optional[str] = None
    error: Optional[str] = None


class Presenter(Protocol):
    def report_cycle(self, result: CycleResult) -> None:
        ...

    def report_recovery(self, outcome: RecoveryOutcome) -> None:
        ...


class ReplicaMonitor:
    """
    Polls one replica, tracks its lag trend and skips matching SQL errors

    After a recovery attempt the next poll happens immediately, without the
    interval sleep and without any retry cap.
    """

    def __init__(
        self,
        status_source,
        recovery,
        presenter: Presenter,
        error_matcher: Optional[ErrorMatcher] = None,
        interval_seconds: float = MONITORING_INTERVAL_SECONDS,
        clock=datetime.now,
    ):
        self.status_source = status_source
        self.recovery = recovery
        self.presenter = presenter
        self.error_matcher = error_matcher or ErrorMatcher()
        self.estimator = LagTrendEstimator()
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.stop_event = Event()
        self.state = LoopState.IDLE
        self.cycles = 0

    def poll(self) -> CycleResult:
        """Fetch one snapshot, update the lag trend and check Last_SQL_Error"""
        self.state = LoopState.POLLING
        checked_at = self.clock()

        try:
            snapshot = self.status_source.fetch_status()
        except StatusFetchError as e:
            logger.error(str(e))
            result = CycleResult(checked_at, CycleStatus.FETCH_FAILED, error=str(e))
        else:
            if snapshot is None:
                result = CycleResult(checked_at, CycleStatus.NO_REPLICA_STATUS)
            else:
                self.state = LoopState.REPORTING
                trend = None
                if snapshot.seconds_behind is not None:
                    trend = self.estimator.update(snapshot.seconds_behind, checked_at)
                match = self.error_matcher.matches(snapshot.last_sql_error)
                result = CycleResult(
                    checked_at,
                    CycleStatus.OK,
                    snapshot=snapshot,
                    trend=trend,
                    matched=match.matched,
                    matched_pattern=match.pattern,
                )

        self.presenter.report_cycle(result)
        return result

    def recover(self) -> RecoveryOutcome:
        """Invoke the recovery action exactly once and report the outcome"""
        self.state = LoopState.RECOVERING
        outcome = self.recovery.invoke_recovery()
        self.presenter.report_recovery(outcome)
        return outcome

    def run_cycle(self) -> LoopState:
        """
        Run one poll cycle

        Returns:
            LoopState.POLLING when a recovery ran and the next poll is due now,
            LoopState.SLEEPING otherwise
        """
        result = self.poll()
        if result.matched:
            self.recover()
            self.state = LoopState.POLLING
        else:
            self.state = LoopState.SLEEPING
        self.cycles += 1
        return self.state

    def monitor(self, duration_seconds: Optional[float] = None, max_cycles: Optional[int] = None):
        """Run the monitoring loop until stopped or an optional bound is reached"""
        logger.info("Starting replica status monitoring...")

        start_time = time.monotonic()

        try:
            while not self.stop_event.is_set() and (max_cycles is None or self.cycles < max_cycles):
                next_state = self.run_cycle()

                if max_cycles is not None and self.cycles >= max_cycles:
                    logger.info(f"Cycle limit reached ({max_cycles})")
                    break

                if duration_seconds is not None and (time.monotonic() - start_time) >= duration_seconds:
                    logger.info(f"Monitoring duration reached ({duration_seconds}s)")
                    break

                if next_state is LoopState.SLEEPING:
                    self.stop_event.wait(self.interval_seconds)

        except KeyboardInterrupt:
            logger.info("Monitoring stopped by user")
        finally:
            self.state = LoopState.IDLE
            logger.info(f"Monitoring completed. Total cycles: {self.cycles}")

    def stop(self):
        """Stop after the current cycle; cuts an ongoing sleep short"""
        if not self.stop_event.is_set():
            logger.info("Stopping replica monitor...")
            self.stop_event.set()
