"""
Utility functions for cron expression handling.

Expressions may have 5 fields (minute precision) or 6 fields, in which case the
first field is seconds. Evaluation always happens in UTC.
"""

from datetime import datetime, timezone
from typing import List

from croniter import croniter

from .clock import ensure_utc

SUPPORTED_FIELD_COUNTS = (5, 6)


class InvalidCronExpression(ValueError):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f'Invalid cron expression "{expression}": {reason}')


def _to_croniter_format(expression: str) -> str:
    """
    Normalize an expression into the field order croniter expects.

    croniter reads a sixth field as seconds, while the expressions stored in
    workflows put seconds first. Nicknames such as ``@daily`` pass through.
    """
    if expression is None or not expression.strip():
        raise InvalidCronExpression(expression or "", "expression is empty")

    stripped = expression.strip()
    if stripped.startswith("@"):
        return stripped

    parts = stripped.split()
    if len(parts) not in SUPPORTED_FIELD_COUNTS:
        raise InvalidCronExpression(
            expression, f"expected 5 or 6 fields, got {len(parts)}"
        )

    if len(parts) == 6:
        parts = parts[1:] + parts[:1]
    return " ".join(parts)


def _build_iterator(expression: str, base: datetime) -> croniter:
    normalized = _to_croniter_format(expression)
    try:
        return croniter(normalized, ensure_utc(base))
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidCronExpression(expression, str(e)) from e


def next_occurrence(expression: str, base: datetime) -> datetime:
    """
    Get the next fire time strictly after ``base``.

    Args:
        expression: Cron expression (5 or 6 fields)
        base: Reference instant

    Returns:
        Timezone-aware UTC datetime

    Raises:
        InvalidCronExpression: If the expression cannot be parsed
    """
    base = ensure_utc(base)
    iterator = _build_iterator(expression, base)
    try:
        candidate = iterator.get_next(datetime)
        while candidate <= base:
            candidate = iterator.get_next(datetime)
    except (ValueError, KeyError) as e:
        raise InvalidCronExpression(expression, str(e)) from e
    return candidate.astimezone(timezone.utc)


def is_valid_cron(expression: str) -> bool:
    """Validate a cron expression. Never raises."""
    if not isinstance(expression, str) or not expression.strip():
        return False
    try:
        _build_iterator(expression, datetime.now(timezone.utc))
        return True
    except InvalidCronExpression:
        return False


def preview_fire_times(expression: str, base: datetime, count: int = 5) -> List[datetime]:
    """Calculate the next ``count`` fire times after ``base``."""
    times = []
    current = ensure_utc(base)
    for _ in range(count):
        current = next_occurrence(expression, current)
        times.append(current)
    return times
