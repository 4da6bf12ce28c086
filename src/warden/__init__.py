"""Warden - an embeddable access-control engine.

Warden decides whether a subject may perform an action on a resource. The
decision is made from a set of allow/deny policies whose subjects,
resources and actions are patterns, optionally restricted by conditions on
the request context.

Quick Start:
    >>> from warden import MemoryStore, Request, Warden, load_policy
    >>> store = MemoryStore([load_policy({
    ...     "id": "2",
    ...     "effect": "allow",
    ...     "subjects": ["max"],
    ...     "resources": ["<.*>"],
    ...     "actions": ["update"],
    ... })])
    >>> warden = Warden(store)
    >>> warden.is_allowed(Request(subject="max", action="update", resource="doc:1"))

Main Components:
    - Warden: Evaluates requests against the policies in a store
    - Request: Subject, action, resource and context of one access check
    - Policy / load_policy(): Validated policies loaded from dict, JSON or file
    - Matcher / PatternCache: Literal and ``<regex>`` pattern matching
    - ConditionRegistry / get_default_registry(): Condition type registry
    - MemoryStore: Thread-safe in-memory policy store

Built-in Condition Types:
    - DefinedCondition: Context value is present and not null
    - StringEqualCondition: Context value equals a configured string
    - EqualsSubjectCondition: Context value equals the request subject
    - CIDRCondition: Context value is an IP address in a configured network
    - StringMatchCondition: Context value matches a regular expression
    - BooleanCondition: Context value is a configured boolean
    - StringPairsEqualCondition: Context value is a list of equal string pairs

Exceptions:
    - ExplicitDenyError: A deny policy matched
    - DefaultDenyError: No policy matched
    - StoreError: The policy store failed
    - PolicyLoadError: A policy is invalid
    - ConditionSyntaxError / UnknownConditionError: A condition cannot be loaded
"""

from .conditions import (
    BooleanCondition,
    CIDRCondition,
    Condition,
    Conditions,
    DefinedCondition,
    EqualsSubjectCondition,
    StringEqualCondition,
    StringMatchCondition,
    StringPairsEqualCondition,
)
from .engine import Decision, Warden
from .errors import (
    AccessDeniedError,
    ConditionSyntaxError,
    DefaultDenyError,
    ExplicitDenyError,
    PatternSyntaxError,
    PolicyExistsError,
    PolicyLoadError,
    PolicyNotFoundError,
    RequestError,
    StoreError,
    UnknownConditionError,
    WardenError,
)
from .matcher import Matcher, PatternCache
from .policy import ALLOW, DENY, Policy, dump_policy, load_policies, load_policy
from .registry import (
    ConditionRegistry,
    conditions_from_json,
    conditions_to_json,
    dump_conditions,
    get_default_registry,
    load_conditions,
)
from .request import MISSING, Request
from .store import MemoryStore, PolicyStore

__all__ = [
    "ALLOW",
    "AccessDeniedError",
    "BooleanCondition",
    "CIDRCondition",
    "Condition",
    "ConditionRegistry",
    "ConditionSyntaxError",
    "Conditions",
    "DENY",
    "Decision",
    "DefaultDenyError",
    "DefinedCondition",
    "EqualsSubjectCondition",
    "ExplicitDenyError",
    "MISSING",
    "Matcher",
    "MemoryStore",
    "PatternCache",
    "PatternSyntaxError",
    "Policy",
    "PolicyExistsError",
    "PolicyLoadError",
    "PolicyNotFoundError",
    "PolicyStore",
    "Request",
    "RequestError",
    "StoreError",
    "StringEqualCondition",
    "StringMatchCondition",
    "StringPairsEqualCondition",
    "UnknownConditionError",
    "Warden",
    "WardenError",
    "conditions_from_json",
    "conditions_to_json",
    "dump_conditions",
    "dump_policy",
    "get_default_registry",
    "load_conditions",
    "load_policies",
    "load_policy",
]
