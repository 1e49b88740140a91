"""Object key allocation."""

import uuid
from collections.abc import Callable

KeyFactory = Callable[[], str]


def new_key() -> str:
    """Return a fresh, unpredictable object key.

    Keys are random UUID4 strings drawn from the OS entropy source. There is
    no shared counter, so concurrent callers never coordinate.
    """
    return str(uuid.uuid4())
