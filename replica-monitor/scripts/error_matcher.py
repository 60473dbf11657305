"""
Matches Last_SQL_Error against the configured fatal replication error patterns
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from db_config import ERROR_PATTERNS

logger = logging.getLogger(__name__)


class PatternConfigurationError(ValueError):
    """Raised at startup when an error pattern cannot be compiled"""
    pass


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    pattern: Optional[str] = None


NO_MATCH = MatchResult(matched=False)


def compile_patterns(patterns: Sequence[Union[str, re.Pattern]]) -> list:
    """Compile patterns in order, failing fast on the first malformed one"""
    if not patterns:
        raise PatternConfigurationError("At least one error pattern is required")

    compiled = []
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            compiled.append(pattern)
            continue
        try:
            compiled.append(re.compile(pattern))
        except (re.error, TypeError) as e:
            raise PatternConfigurationError(f"Invalid error pattern {pattern!r}: {e}") from e
    return compiled


class ErrorMatcher:
    """Ordered set of unanchored regexes; the first one found wins"""

    def __init__(self, patterns: Sequence[Union[str, re.Pattern]] = ERROR_PATTERNS):
        self.patterns = compile_patterns(patterns)

    def matches(self, last_sql_error: Optional[str]) -> MatchResult:
        """Test Last_SQL_Error; empty or missing text never matches"""
        if not last_sql_error:
            return NO_MATCH

        for pattern in self.patterns:
            try:
                found = pattern.search(last_sql_error)
            except (re.error, TypeError) as e:
                logger.error(f"Error matching regex pattern '{pattern.pattern}': {e}")
                continue
            if found:
                return MatchResult(matched=True, pattern=pattern.pattern)
        return NO_MATCH


def match_error(last_sql_error: Optional[str], patterns: Sequence[Union[str, re.Pattern]]) -> MatchResult:
    """One-shot helper: compile patterns and test a single error string"""
    return ErrorMatcher(patterns).matches(last_sql_error)
