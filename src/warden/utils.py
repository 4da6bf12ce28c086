from __future__ import annotations

from typing import Any


def as_string(value: Any) -> str:
    """Convert a context value to the string conditions compare against.

    Conversion rules:
        - ``str``: The value itself
        - ``bool``: ``"true"`` or ``"false"`` (the JSON spelling)
        - ``int``/``float``: ``str(value)``
        - ``bytes``: Decoded as UTF-8, invalid bytes replaced
        - Other values: ``str(value)``

    Examples:
        >>> as_string("admin")
        'admin'
        >>> as_string(True)
        'true'
        >>> as_string(42)
        '42'
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
