from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import RequestError


class _Missing:
    """Type of the ``MISSING`` sentinel."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Value handed to a condition whose context key is not in the request.

``MISSING`` is distinct from ``None``: a context may carry a key whose value
is ``None``, and conditions can tell the two apart.
"""


def is_present(value: Any) -> bool:
    """Return ``True`` if ``value`` is neither ``MISSING`` nor ``None``."""
    return value is not MISSING and value is not None


@dataclass(frozen=True)
class Request:
    """An access request: may ``subject`` perform ``action`` on ``resource``?

    Requests are created per check and never stored.

    Attributes:
        subject: Who is asking. Matched against policy ``subjects``.
        action: What they want to do. Matched against policy ``actions``.
        resource: What they want to do it to. Matched against policy
            ``resources``.
        context: Named values available to conditions only. Values are
            typically strings, numbers or booleans.

    Note:
        All three identifiers default to the empty string, which is a legal
        value and is matched by patterns such as ``<.*>``.
    """

    subject: str = ""
    action: str = ""
    resource: str = ""
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.context is None:
            object.__setattr__(self, "context", {})
        elif not isinstance(self.context, Mapping):
            raise RequestError("request 'context' must be a mapping")

    def value(self, name: str) -> Any:
        """Return the context value for ``name`` or ``MISSING``."""
        return self.context.get(name, MISSING)

    @classmethod
    def from_dict(cls, data: Any) -> Request:
        """Build a request from its JSON form.

        Args:
            data: A dict with optional ``subject``, ``action``, ``resource``
                (strings) and ``context`` (dict) keys.

        Raises:
            RequestError: If ``data`` or its fields have the wrong type.
        """
        if not isinstance(data, Mapping):
            raise RequestError("request must be a JSON object")
        values: dict[str, str] = {}
        for key in ("subject", "action", "resource"):
            value = data.get(key, "")
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise RequestError(f"request '{key}' must be a string")
            values[key] = value
        context = data.get("context") or {}
        if not isinstance(context, Mapping):
            raise RequestError("request 'context' must be an object")
        return cls(context=dict(context), **values)
