"""Helpers and utilities."""

import re
import uuid
from typing import Dict, Any, List, Callable, Iterable, Optional
from datetime import datetime

from dateutil.parser import parse as parse_date
from pytz import UTC

IDENTIFIER = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$'
)
"""Identifiers are lower-case hex UUIDs."""


def get_tzaware_utc_now() -> datetime:
    """Generate a datetime for the current moment in UTC."""
    return datetime.now(UTC)


def new_identifier() -> str:
    """Generate a new entity identifier."""
    return str(uuid.uuid4())


def is_identifier(value: Any) -> bool:
    """Check whether ``value`` looks like an entity identifier."""
    return isinstance(value, str) and IDENTIFIER.match(value) is not None


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings, and make naive datetimes UTC-aware."""
    if value is None:
        return None
    if isinstance(value, str):
        value = parse_date(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def dict_coerce(factory: Callable[..., Any], data: dict) -> Dict[str, Any]:
    return {key: factory(**value) if isinstance(value, dict) else value
            for key, value in data.items()}


def list_coerce(factory: Callable[..., Any], data: Iterable) -> List[Any]:
    return [factory(**value) if isinstance(value, dict) else value
            for value in data]
