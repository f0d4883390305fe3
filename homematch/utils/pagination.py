from typing import Optional, Tuple

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def clamp_limit_offset(
    limit: Optional[str],
    offset: Optional[str],
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> Tuple[int, int]:
    """Lenient limit/offset parsing for list endpoints.

    Unparseable values fall back to defaults instead of failing the request;
    limit is clamped to [1, max_limit] and offset to >= 0.
    """
    parsed_limit = _parse_int(limit)
    parsed_offset = _parse_int(offset)
    if parsed_limit is None:
        parsed_limit = default_limit
    if parsed_offset is None:
        parsed_offset = 0
    return max(1, min(parsed_limit, max_limit)), max(0, parsed_offset)
