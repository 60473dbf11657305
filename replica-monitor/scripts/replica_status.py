"""
Replica status snapshot and the source that reads it from MySQL
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

import pymysql

from db_config import STATUS_QUERY

logger = logging.getLogger(__name__)

# (attribute, column on MySQL >= 8.0.22, column on older servers)
STATUS_COLUMNS = [
    ("io_state", "Replica_IO_State", "Slave_IO_State"),
    ("source_host", "Source_Host", "Master_Host"),
    ("source_port", "Source_Port", "Master_Port"),
    ("io_running", "Replica_IO_Running", "Slave_IO_Running"),
    ("sql_running", "Replica_SQL_Running", "Slave_SQL_Running"),
    ("replicate_do_db", "Replicate_Do_DB", None),
    ("replicate_ignore_db", "Replicate_Ignore_DB", None),
    ("last_io_error", "Last_IO_Error", None),
    ("last_sql_error", "Last_SQL_Error", None),
    ("seconds_behind_raw", "Seconds_Behind_Source", "Seconds_Behind_Master"),
]


class StatusFetchError(Exception):
    """Raised when the status query cannot be executed"""
    pass


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')
    return str(value)


def parse_seconds_behind(raw: Optional[str]) -> Optional[int]:
    """Parse Seconds_Behind_Source; NULL, empty or non-numeric means unknown"""
    if raw is None:
        return None
    raw = raw.strip()
    if not raw or raw.upper() == "NULL":
        return None
    try:
        seconds = int(raw)
    except ValueError:
        return None
    # Negative values only show up with clock skew between source and replica
    return seconds if seconds >= 0 else None


@dataclass(frozen=True)
class StatusSnapshot:
    """One row of SHOW REPLICA STATUS, reduced to the fields we watch"""
    io_state: Optional[str] = None
    source_host: Optional[str] = None
    source_port: Optional[str] = None
    io_running: Optional[str] = None
    sql_running: Optional[str] = None
    replicate_do_db: Optional[str] = None
    replicate_ignore_db: Optional[str] = None
    last_io_error: Optional[str] = None
    last_sql_error: Optional[str] = None
    seconds_behind_raw: Optional[str] = None

    @property
    def seconds_behind(self) -> Optional[int]:
        return parse_seconds_behind(self.seconds_behind_raw)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StatusSnapshot":
        """Build a snapshot from a dict row, accepting legacy column names"""
        values = {}
        for attribute, column, legacy_column in STATUS_COLUMNS:
            value = row.get(column)
            if value is None and legacy_column:
                value = row.get(legacy_column)
            values[attribute] = _to_text(value)
        return cls(**values)

    def display_fields(self) -> List[Tuple[str, Optional[str]]]:
        """Ordered (column, value) pairs for console output"""
        return [(column, getattr(self, attribute)) for attribute, column, _ in STATUS_COLUMNS]


class ReplicaStatusSource:
    """Reads replica status through a DatabaseConnection"""

    def __init__(self, db, query: str = STATUS_QUERY):
        self.db = db
        self.query = query

    def fetch_status(self) -> Optional[StatusSnapshot]:
        """
        Run the status query once

        Returns:
            StatusSnapshot for the first row, None when the server is not a replica

        Raises:
            StatusFetchError: the query failed
        """
        try:
            rows = self.db.execute_query(self.query)
        except pymysql.MySQLError as e:
            raise StatusFetchError(f"Error executing {self.query}: {e}") from e

        if not rows:
            return None
        if len(rows) > 1:
            logger.warning(f"{len(rows)} replication channels reported, watching the first one")
        return StatusSnapshot.from_row(rows[0])
