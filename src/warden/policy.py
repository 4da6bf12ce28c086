from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .conditions import Conditions
from .errors import ConditionSyntaxError, PatternSyntaxError, PolicyLoadError
from .matcher import validate_pattern
from .registry import ConditionRegistry, dump_conditions, load_conditions

ALLOW = "allow"
DENY = "deny"
EFFECTS = (ALLOW, DENY)


@dataclass(frozen=True)
class Policy:
    """A validated access policy.

    This is a frozen (immutable) dataclass. The engine reads policies but
    never changes them.

    Attributes:
        id: Unique policy identifier.
        effect: Either ``"allow"`` or ``"deny"``. The outcome this policy
            contributes when it matches a request.
        subjects: Patterns matched against ``Request.subject``.
        resources: Patterns matched against ``Request.resource``.
        actions: Patterns matched against ``Request.action``.
        conditions: Conditions keyed by the context value each inspects.
            All must be fulfilled for the policy to match.
        description: Free text; has no effect on decisions.
    """

    id: str
    effect: str
    subjects: tuple[str, ...]
    resources: tuple[str, ...]
    actions: tuple[str, ...]
    conditions: Conditions = field(default_factory=Conditions)
    description: str = ""

    def __post_init__(self) -> None:
        if self.effect not in EFFECTS:
            raise PolicyLoadError(f"policy {self.id!r} has invalid effect {self.effect!r}")
        # Pattern lists passed in from code are checked and frozen.
        for key in ("subjects", "resources", "actions"):
            patterns = getattr(self, key)
            if isinstance(patterns, str) or not isinstance(patterns, (list, tuple)):
                raise PolicyLoadError(f"policy {self.id!r} '{key}' must be a list of patterns")
            if not all(isinstance(p, str) for p in patterns):
                raise PolicyLoadError(f"policy {self.id!r} '{key}' must only contain strings")
            object.__setattr__(self, key, tuple(patterns))
        if not isinstance(self.conditions, Conditions):
            object.__setattr__(self, "conditions", Conditions(self.conditions or {}))


def validate_policy(policy: Policy) -> None:
    """Check that ``policy`` can be stored.

    Every pattern list must be non-empty and every pattern must compile.

    Raises:
        PolicyLoadError: If the policy is invalid.
    """
    if not policy.id:
        raise PolicyLoadError("policy requires non-empty 'id'")
    for key in ("subjects", "resources", "actions"):
        patterns = getattr(policy, key)
        if not patterns:
            raise PolicyLoadError(f"policy {policy.id!r} has no {key}")
        for pattern in patterns:
            try:
                validate_pattern(pattern)
            except PatternSyntaxError as exc:
                raise PolicyLoadError(str(exc)) from exc


def _read_source(source: Any, base_dir: str | None) -> Any:
    if isinstance(source, (str, Path)):
        text = str(source)
        if text.strip().startswith(("{", "[")):
            return json.loads(text)
        path = Path(text)
        if not path.is_absolute() and base_dir:
            path = Path(base_dir) / path
        return json.loads(path.read_text(encoding="utf-8"))
    if isinstance(source, (Mapping, list)):
        return source
    raise PolicyLoadError(f"Unsupported policy source type: {type(source).__name__}")


def _patterns(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    items = data.get(key)
    if not isinstance(items, list) or not items:
        raise PolicyLoadError(f"policy '{key}' must be a non-empty list")
    for item in items:
        if not isinstance(item, str):
            raise PolicyLoadError(f"policy '{key}' must only contain strings")
        validate_pattern(item)
    return tuple(items)


def _build_policy(data: Any, registry: ConditionRegistry | None) -> Policy:
    if not isinstance(data, Mapping):
        raise PolicyLoadError("policy must be a JSON object")

    policy_id = data.get("id")
    effect = data.get("effect")
    description = data.get("description") or ""

    if not isinstance(policy_id, str) or not policy_id:
        raise PolicyLoadError("policy requires non-empty 'id'")
    if effect not in EFFECTS:
        raise PolicyLoadError("policy 'effect' must be 'allow' or 'deny'")
    if not isinstance(description, str):
        raise PolicyLoadError("policy 'description' must be a string")

    return Policy(
        id=policy_id,
        effect=effect,
        subjects=_patterns(data, "subjects"),
        resources=_patterns(data, "resources"),
        actions=_patterns(data, "actions"),
        conditions=load_conditions(data.get("conditions"), registry),
        description=description,
    )


def load_policy(source: Any, registry: ConditionRegistry | None = None, *, base_dir: str | None = None) -> Policy:
    """Load and validate a policy from a dict, JSON string, or file path.

    All validation happens here, so a policy that loads can always be
    evaluated: the effect is checked, every pattern is compiled once and
    every condition is resolved through the registry.

    Args:
        source: Policy source. Can be:
            - A ``dict`` with policy data (keys: ``id``, ``effect``,
              ``subjects``, ``resources``, ``actions`` and optionally
              ``conditions`` and ``description``)
            - A JSON string (detected by leading ``{`` after stripping whitespace)
            - A file path (``str`` or ``Path``) to a JSON file
        registry: Condition registry used to deserialize ``conditions``. If
            ``None``, uses the default registry from ``get_default_registry()``.
        base_dir: Base directory for resolving relative file paths. Only
            used when ``source`` is a relative path string.

    Returns:
        A validated ``Policy``.

    Raises:
        PolicyLoadError: If the source cannot be loaded, parsed, or fails
            validation. Wraps underlying ``json.JSONDecodeError``,
            ``OSError``, ``PatternSyntaxError`` or ``ConditionSyntaxError``
            exceptions.

    Examples:
        >>> load_policy({
        ...     "id": "1",
        ...     "effect": "allow",
        ...     "subjects": ["max"],
        ...     "resources": ["<.*>"],
        ...     "actions": ["update"],
        ... })
        Policy(id='1', effect='allow', subjects=('max',), ...)
    """
    try:
        return _build_policy(_read_source(source, base_dir), registry)
    except (json.JSONDecodeError, OSError, PatternSyntaxError, ConditionSyntaxError) as exc:
        raise PolicyLoadError(str(exc)) from exc


def load_policies(
    source: Any, registry: ConditionRegistry | None = None, *, base_dir: str | None = None
) -> list[Policy]:
    """Load a list of policies.

    Accepts the same source kinds as ``load_policy()``. The data must be a
    JSON array of policy objects, or an object with a ``"policies"`` array.

    Raises:
        PolicyLoadError: If any policy is invalid or two policies share an id.
    """
    try:
        data = _read_source(source, base_dir)
        if isinstance(data, Mapping):
            data = data.get("policies")
        if not isinstance(data, list):
            raise PolicyLoadError("policies must be a list")
        policies = [_build_policy(item, registry) for item in data]
    except (json.JSONDecodeError, OSError, PatternSyntaxError, ConditionSyntaxError) as exc:
        raise PolicyLoadError(str(exc)) from exc

    seen: set[str] = set()
    for policy in policies:
        if policy.id in seen:
            raise PolicyLoadError(f"duplicate policy id '{policy.id}'")
        seen.add(policy.id)
    return policies


def dump_policy(policy: Policy) -> dict[str, Any]:
    """Serialize a policy to its JSON-compatible persisted form."""
    return {
        "id": policy.id,
        "description": policy.description,
        "effect": policy.effect,
        "subjects": list(policy.subjects),
        "resources": list(policy.resources),
        "actions": list(policy.actions),
        "conditions": dump_conditions(policy.conditions),
    }
