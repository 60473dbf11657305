"""
Database connection utilities with retry logic and lazy reconnect
"""
import pymysql
from pymysql.cursors import DictCursor
import time
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when the replica cannot be reached after all retries"""
    pass


class DatabaseConnection:
    """Manages a single MySQL connection with retry and reconnect logic"""

    def __init__(self, config, connect=pymysql.connect):
        """
        Initialize database connection manager

        Args:
            config: ReplicaConfig instance
            connect: Connection factory (pymysql.connect by default)
        """
        self.config = config
        self.connection: Optional[pymysql.connections.Connection] = None
        self._connect = connect

    def initialize(self, max_retries: int = 5, retry_delay: int = 2):
        """
        Open the connection with retry logic

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Seconds to wait between retries
        """
        for attempt in range(max_retries):
            try:
                self.connection = self._connect(
                    host=self.config.host,
                    port=self.config.port,
                    user=self.config.user,
                    password=self.config.password,
                    connect_timeout=self.config.connect_timeout,
                    read_timeout=self.config.read_timeout,
                    write_timeout=self.config.read_timeout,
                    cursorclass=DictCursor,
                    autocommit=True,
                )
                logger.info(f"Connection initialized for {self.config.connection_string}")
                return
            except pymysql.err.OperationalError as e:
                if attempt < max_retries - 1:
                    logger.warning(
                        f"Connection attempt {attempt + 1}/{max_retries} failed, "
                        f"retrying in {retry_delay}s... Error: {e}"
                    )
                    time.sleep(retry_delay)
                else:
                    logger.error(f"Failed to connect after {max_retries} attempts")
                    raise DatabaseConnectionError(
                        f"Cannot connect to {self.config.host}:{self.config.port}: {e}"
                    ) from e

    def get_connection(self):
        """Get the open connection, reconnecting if the server dropped it"""
        if not self.connection:
            self.initialize()
        else:
            self.connection.ping(reconnect=True)
        return self.connection

    def ping(self):
        """Verify the server answers; raises pymysql.MySQLError otherwise"""
        self.get_connection().ping(reconnect=False)

    def execute_query(
        self,
        query: str,
        params: Optional[tuple] = None,
        fetch: bool = True
    ) -> Optional[list]:
        """
        Execute a query with automatic connection management

        Args:
            query: SQL query to execute
            params: Query parameters
            fetch: Whether to fetch and return results

        Returns:
            List of results (as dicts) if fetch=True, None otherwise
        """
        try:
            conn = self.get_connection()
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                if fetch:
                    return list(cursor.fetchall())
                return None
        except pymysql.MySQLError as e:
            logger.error(f"Query execution failed: {e}")
            raise

    def close(self):
        """Close the connection"""
        if self.connection:
            try:
                self.connection.close()
            except pymysql.err.Error as e:
                logger.warning(f"Error while closing connection: {e}")
            self.connection = None
            logger.info("Connection closed")
