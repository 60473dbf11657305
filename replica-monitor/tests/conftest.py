"""Shared fixtures for the replica monitor tests."""

from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest
from faker import Faker

from recovery import RecoveryOutcome
from replica_status import StatusSnapshot


@pytest.fixture
def fake() -> Faker:
    Faker.seed(1234)
    return Faker()


@pytest.fixture
def t0() -> datetime:
    return datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def status_row(fake) -> Dict[str, Any]:
    """SHOW REPLICA STATUS row as returned by a DictCursor."""
    return {
        "Replica_IO_State": "Waiting for source to send event",
        "Source_Host": fake.hostname(),
        "Source_Port": 3306,
        "Replica_IO_Running": "Yes",
        "Replica_SQL_Running": "Yes",
        "Replicate_Do_DB": "",
        "Replicate_Ignore_DB": "",
        "Last_IO_Error": "",
        "Last_SQL_Error": "",
        "Seconds_Behind_Source": 120,
        "Relay_Log_File": "relay-bin.000042",
    }


@pytest.fixture
def make_snapshot(fake):
    """Factory for snapshots with a given lag and SQL error."""
    def _make(seconds_behind=None, last_sql_error: str = "") -> StatusSnapshot:
        return StatusSnapshot(
            io_state="Waiting for source to send event",
            source_host=fake.hostname(),
            source_port="3306",
            io_running="Yes",
            sql_running="Yes" if not last_sql_error else "No",
            last_sql_error=last_sql_error,
            seconds_behind_raw=None if seconds_behind is None else str(seconds_behind),
        )
    return _make


class RecordingPresenter:
    """Presenter double that keeps everything it was handed."""

    def __init__(self):
        self.cycles: List = []
        self.recoveries: List[RecoveryOutcome] = []

    def report_cycle(self, result) -> None:
        self.cycles.append(result)

    def report_recovery(self, outcome: RecoveryOutcome) -> None:
        self.recoveries.append(outcome)


class ScriptedStatusSource:
    """Returns (or raises) the scripted items in order, repeating the last one."""

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0

    def fetch_status(self):
        item = self.items[min(self.calls, len(self.items) - 1)]
        self.calls += 1
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingRecovery:
    def __init__(self, success: bool = True, clock=datetime.now):
        self.success = success
        self.calls = 0
        self.clock = clock

    def invoke_recovery(self) -> RecoveryOutcome:
        self.calls += 1
        return RecoveryOutcome(
            statement="CALL mysql.rds_skip_repl_error;",
            success=self.success,
            attempted_at=self.clock(),
            error=None if self.success else "Access denied",
        )


class StepClock:
    """Clock advancing by a fixed step on every call."""

    def __init__(self, start: datetime, step_seconds: float = 5):
        self.now = start
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def clock(t0) -> StepClock:
    return StepClock(t0, step_seconds=10)
