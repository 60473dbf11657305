"""
Centralized replica connection and monitoring configuration
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


@dataclass
class ReplicaConfig:
    """MySQL replica connection configuration"""
    host: Optional[str]
    port: int
    user: Optional[str]
    password: Optional[str]
    connect_timeout: int = 10
    read_timeout: int = 30

    @property
    def connection_string(self) -> str:
        """Get MySQL connection string (password masked)"""
        return f"mysql://{self.user}:***@{self.host}:{self.port}/"

    @property
    def is_complete(self) -> bool:
        """Host, user and password are all required to connect"""
        return bool(self.host and self.user and self.password)


def parse_patterns(raw: Optional[str]) -> List[str]:
    """Split a ';'-separated pattern list, dropping blank entries"""
    if not raw:
        return []
    return [pattern.strip() for pattern in raw.split(';') if pattern.strip()]


# Configuration for the monitored replica
REPLICA_CONFIG = ReplicaConfig(
    host=os.getenv("REPLICA_HOST"),
    port=int(os.getenv("REPLICA_PORT", "3306")),
    user=os.getenv("MYSQL_USER"),
    password=os.getenv("MYSQL_PASSWORD"),
    connect_timeout=int(os.getenv("MYSQL_CONNECT_TIMEOUT", "10")),
    read_timeout=int(os.getenv("MYSQL_READ_TIMEOUT", "30")),
)

# Monitoring loop
MONITORING_INTERVAL_SECONDS = float(os.getenv("MONITORING_INTERVAL", "5"))  # 5s default

# Replication errors that trigger the recovery statement
DEFAULT_ERROR_PATTERNS = ["Coordinator stopped"]
ERROR_PATTERNS = parse_patterns(os.getenv("ERROR_PATTERNS")) or DEFAULT_ERROR_PATTERNS

# SQL used by the status source and the recovery action
STATUS_QUERY = os.getenv("STATUS_QUERY", "SHOW REPLICA STATUS")
RECOVERY_STATEMENT = os.getenv("RECOVERY_STATEMENT", "CALL mysql.rds_skip_repl_error;")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
