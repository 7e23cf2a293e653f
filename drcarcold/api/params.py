"""
Query/body parameter helpers shared by the API views.
"""

from typing import Any, Optional

TRUE_STRINGS = {'true', '1', 'yes', 'on'}
FALSE_STRINGS = {'false', '0', 'no', 'off'}


def parse_bool(value: Any, default: Optional[bool] = None) -> Optional[bool]:
    """
    Interpret query-string and JSON booleans.

    >>> parse_bool('true'), parse_bool('0'), parse_bool(None, False)
    (True, False, False)
    """
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_STRINGS:
        return True
    if lowered in FALSE_STRINGS:
        return False
    return default


def parse_int(value: Any, default: int, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Parse an int, falling back to `default` and clamping to the bounds."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    if minimum is not None:
        number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number
