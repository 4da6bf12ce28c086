from __future__ import annotations

from typing import Any


class WardenError(Exception):
    """Base exception for all warden errors.

    All other exceptions in this package inherit from this class,
    allowing callers to catch all warden-related errors with a single
    except clause.
    """


class PolicyLoadError(WardenError):
    """Raised when a policy cannot be loaded or fails validation.

    Common causes:
        - Invalid JSON syntax in policy source
        - File not found or unreadable
        - Missing or empty ``id``
        - Invalid ``effect`` value (must be "allow" or "deny")
        - Empty or non-string ``subjects``/``resources``/``actions``
        - A malformed pattern or an unloadable condition
    """


class PatternSyntaxError(WardenError):
    """Raised when a pattern has unbalanced ``<``/``>`` delimiters or an
    embedded regular expression that does not compile."""


class ConditionSyntaxError(WardenError):
    """Raised when a condition specification is invalid.

    Common causes:
        - Condition spec is not a dict
        - Missing or empty ``type`` field
        - ``options`` is not a dict, names an unknown field, or holds a
          value of the wrong type
    """


class UnknownConditionError(ConditionSyntaxError):
    """Raised when a condition type is not found in the registry.

    The exception message contains the unknown condition type name.
    """


class RequestError(WardenError):
    """Raised when an access request payload is malformed."""


class StoreError(WardenError):
    """Raised when the policy store cannot be queried or updated."""


class PolicyExistsError(StoreError):
    """Raised when creating a policy whose id is already stored."""


class PolicyNotFoundError(StoreError):
    """Raised when a policy id is not present in the store."""


class AccessDeniedError(WardenError):
    """Raised by ``Warden.is_allowed()`` when access is not granted.

    Attributes:
        decision: The ``Decision`` that led to the denial.
    """

    def __init__(self, message: str, decision: Any = None) -> None:
        super().__init__(message)
        self.decision = decision


class ExplicitDenyError(AccessDeniedError):
    """At least one matching policy has effect ``deny``.

    Attributes:
        policy_ids: Ids of the matching deny policies.
    """

    def __init__(self, policy_ids: list[str], decision: Any = None) -> None:
        super().__init__(
            "request was denied by policy " + ", ".join(repr(p) for p in policy_ids),
            decision,
        )
        self.policy_ids = list(policy_ids)


class DefaultDenyError(AccessDeniedError):
    """No policy matched the request."""

    def __init__(self, decision: Any = None) -> None:
        super().__init__("request was denied by default: no policy matched", decision)
