"""
Output for replica monitoring cycles
Contains duration formatting, the console presenter and the JSON Lines metrics sink
"""
import json
import logging
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import List, Optional

from lag_trend import TrendReport
from recovery import RecoveryOutcome
from replica_monitor import CycleResult, CycleStatus

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_METRICS_FILE = Path(__file__).parent.parent / 'logs' / 'monitoring' / 'metrics.jsonl'


def format_duration(seconds: float) -> str:
    """Format seconds as 1d 2h 3m 4s, starting at the largest non-zero unit"""
    total = int(seconds)
    days = total // 86400
    hours = (total % 86400) // 3600
    minutes = (total % 3600) // 60
    secs = total % 60

    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    elif hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


class MetricsEncoder(json.JSONEncoder):
    """JSON encoder for datetimes, enums and Decimal values from MySQL"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return float(obj)
        return super(MetricsEncoder, self).default(obj)


class ConsolePresenter:
    """Prints replica status and lag trends for a human watching the terminal"""

    def report_cycle(self, result: CycleResult) -> None:
        text = self.format_cycle(result)
        if text:
            print(text)

    def report_recovery(self, outcome: RecoveryOutcome) -> None:
        print(self.format_recovery(outcome))

    def format_cycle(self, result: CycleResult) -> Optional[str]:
        """Format one cycle for console display; fetch failures are only logged"""
        timestamp = result.checked_at.strftime(TIMESTAMP_FORMAT)

        if result.status is CycleStatus.FETCH_FAILED:
            return None
        if result.status is CycleStatus.NO_REPLICA_STATUS:
            return f"\n[{timestamp}] No replica status found"

        output = [
            f"\n[{timestamp}] Replica Status:",
            "=" * 50,
        ]

        for column, value in result.snapshot.display_fields():
            if column.startswith("Seconds_Behind") and result.trend is not None:
                output.append(self.format_seconds_behind(column, result.trend))
                output.extend(self.format_trend(result.trend))
            else:
                output.append(f"{column}: {value if value is not None else 'NULL'}")

        output.append("")

        if result.matched:
            output.append(f"🚨 Pattern '{result.matched_pattern}' found in Last_SQL_Error!")

        return "\n".join(output)

    def format_seconds_behind(self, column: str, trend: TrendReport) -> str:
        if trend.caught_up:
            return f"{column}: 0s (caught up!)"
        return f"{column}: {format_duration(trend.seconds_behind)}"

    def format_trend(self, trend: TrendReport) -> List[str]:
        """Rate and ETA lines, instant first, then the long-term average"""
        output = ["📊 Replication Performance:"]
        output.extend(self._format_rate("Instant", "🚀", trend.instant_rate, trend.instant_eta, trend.observed_at))
        output.extend(self._format_rate("Average", "📈", trend.average_rate, trend.average_eta, trend.observed_at))
        return output

    def _format_rate(self, label: str, emoji: str, rate: float, eta: Optional[datetime], now: datetime) -> List[str]:
        if rate == 0:
            return []
        if rate > 0:
            return [f"  ⚠️  {label}: Falling behind at {rate:.2f} seconds/second"]

        lines = [f"  {emoji} {label}: Catching up at {-rate:.2f} seconds/second"]
        if eta is not None:
            remaining = (eta - now).total_seconds()
            lines.append(
                f"  ⏰ {label} ETA: {format_duration(remaining)} ({eta.strftime(TIMESTAMP_FORMAT)})"
            )
        return lines

    def format_recovery(self, outcome: RecoveryOutcome) -> str:
        output = [
            "⚠️  WARNING: SQL Error detected!",
            f"🔄 Executing {outcome.statement}...",
        ]
        if outcome.dry_run:
            output.append(f"✅ [DRY RUN] Skipped {outcome.statement}")
        elif outcome.success:
            output.append(f"✅ Successfully executed {outcome.statement}")
        else:
            output.append(f"❌ Failed to execute {outcome.statement}: {outcome.error}")
        return "\n".join(output)


class JsonlMetricsSink:
    """Appends cycle results and recovery outcomes to a JSON Lines file"""

    def __init__(self, filepath: Path = DEFAULT_METRICS_FILE):
        self.filepath = Path(filepath)

    def report_cycle(self, result: CycleResult) -> None:
        record = asdict(result)
        if result.snapshot is not None:
            record["snapshot"]["seconds_behind"] = result.snapshot.seconds_behind
        self._write({"event": "cycle", **record})

    def report_recovery(self, outcome: RecoveryOutcome) -> None:
        self._write({"event": "recovery", **asdict(outcome)})

    def _write(self, record: dict):
        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(self.filepath, 'a') as f:
                f.write(json.dumps(record, cls=MetricsEncoder) + '\n')
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save metrics: {e}")


class PresenterGroup:
    """Forwards every report to each presenter in order"""

    def __init__(self, *presenters):
        self.presenters = list(presenters)

    def report_cycle(self, result: CycleResult) -> None:
        for presenter in self.presenters:
            presenter.report_cycle(result)

    def report_recovery(self, outcome: RecoveryOutcome) -> None:
        for presenter in self.presenters:
            presenter.report_recovery(outcome)
