"""Input validation helpers for UploadGate.

These functions enforce part-number and manifest rules independently of any
HTTP handler, so they run before any backend call is made.

Each function raises ``InvalidArgument`` on invalid input.
"""

from collections.abc import Iterable

from uploadgate.errors import InvalidArgument
from uploadgate.models import MAX_PART_NUMBER, MIN_PART_NUMBER, PartDescriptor

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_part_number(value: object) -> int:
    """Validate a multipart part number.

    Args:
        value: The candidate part number.

    Returns:
        The part number as an int in [1, 1000].

    Raises:
        InvalidArgument: If the value is not an integer or is out of range.
    """
    # bool is an int subclass; True must not pass as part 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(
            f"Part number must be an integer between {MIN_PART_NUMBER} and {MAX_PART_NUMBER}"
        )
    if value < MIN_PART_NUMBER or value > MAX_PART_NUMBER:
        raise InvalidArgument(
            f"Part number must be an integer between {MIN_PART_NUMBER} and {MAX_PART_NUMBER}"
        )
    return value


def validate_manifest(parts: Iterable[PartDescriptor]) -> list[PartDescriptor]:
    """Validate a completion manifest.

    Order is not checked: the backend reconciles entries by part number.
    An empty manifest is valid here and left for the backend to judge.

    Args:
        parts: The part descriptors supplied by the caller.

    Returns:
        The parts as a list, in the order given.

    Raises:
        InvalidArgument: On an out-of-range or duplicate part number, or an
            empty ETag.
    """
    result = list(parts)
    seen: set[int] = set()
    for part in result:
        validate_part_number(part.part_number)
        if part.part_number in seen:
            raise InvalidArgument(f"Part number {part.part_number} is listed more than once")
        seen.add(part.part_number)
        if not part.etag or not part.etag.strip('" '):
            raise InvalidArgument(f"Part number {part.part_number} has an empty ETag")
    return result
