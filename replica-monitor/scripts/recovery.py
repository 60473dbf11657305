"""
Corrective action for a stuck replication SQL thread
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pymysql

from db_config import RECOVERY_STATEMENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoveryOutcome:
    """Result of one recovery attempt"""
    statement: str
    success: bool
    attempted_at: datetime
    error: Optional[str] = None
    dry_run: bool = False


class SkipErrorRecovery:
    """Runs the skip-error statement (mysql.rds_skip_repl_error on RDS)"""

    def __init__(self, db, statement: str = RECOVERY_STATEMENT, dry_run: bool = False, clock=datetime.now):
        self.db = db
        self.statement = statement
        self.dry_run = dry_run
        self.clock = clock

    def invoke_recovery(self) -> RecoveryOutcome:
        """Execute the statement once; failures are returned, not raised"""
        attempted_at = self.clock()

        if self.dry_run:
            logger.info(f"[DRY RUN] Would execute {self.statement}")
            return RecoveryOutcome(self.statement, True, attempted_at, dry_run=True)

        try:
            self.db.execute_query(self.statement, fetch=False)
        except pymysql.MySQLError as e:
            logger.error(f"Error executing {self.statement}: {e}")
            return RecoveryOutcome(self.statement, False, attempted_at, error=str(e))

        return RecoveryOutcome(self.statement, True, attempted_at)
