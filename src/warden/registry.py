from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from .conditions import BUILTIN_CONDITIONS, Condition, Conditions
from .errors import ConditionSyntaxError, UnknownConditionError

ConditionFactory = Callable[[], Condition]
"""Type alias for condition factories.

A condition factory takes no arguments and returns a zero-valued condition,
which is then configured from the serialized options. Condition classes are
their own factories.
"""


class ConditionRegistry:
    """Registry mapping condition type names to factories.

    The registry is used when policies are loaded to turn serialized
    conditions (``{"type": ..., "options": {...}}``) back into condition
    instances. Custom condition types are added via ``register()`` before
    any policy that uses them is loaded.

    Example:
        >>> registry = ConditionRegistry()
        >>> registry.register("IsWeekdayCondition", IsWeekdayCondition)
        >>> cond = registry.create({"type": "IsWeekdayCondition"})
    """

    def __init__(self) -> None:
        """Create an empty condition registry."""
        self._factories: dict[str, ConditionFactory] = {}

    def register(self, type_name: str, factory: ConditionFactory) -> None:
        """Register a condition factory for a given type name.

        If a factory is already registered for the type name, it will
        be replaced.

        Args:
            type_name: The condition type identifier. This is the value of
                the ``"type"`` field in serialized conditions and should
                equal the condition's ``name()``.
            factory: A zero-argument callable returning a zero-valued
                ``Condition``.
        """
        self._factories[type_name] = factory

    def unregister(self, type_name: str) -> None:
        """Remove a condition factory from the registry.

        Does nothing if the type name is not registered.
        """
        self._factories.pop(type_name, None)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._factories

    def construct(self, type_name: str) -> Condition:
        """Create a zero-valued condition of the given type.

        Raises:
            UnknownConditionError: If the type is not registered.
        """
        if type_name not in self._factories:
            raise UnknownConditionError(f"unknown condition type '{type_name}'")
        return self._factories[type_name]()

    def create(self, spec: Any) -> Condition:
        """Create a configured condition from its serialized form.

        Args:
            spec: A dict with a ``"type"`` field and, for conditions that
                have configuration, an ``"options"`` dict.

        Returns:
            The configured ``Condition``.

        Raises:
            ConditionSyntaxError: If ``spec`` is not a dict, has no/empty
                ``"type"``, or its options do not fit the condition type.
            UnknownConditionError: If the type is not registered.
        """
        if not isinstance(spec, Mapping):
            raise ConditionSyntaxError("condition spec must be a dict")
        type_name = spec.get("type")
        if not isinstance(type_name, str) or not type_name:
            raise ConditionSyntaxError("condition spec requires non-empty 'type'")
        condition = self.construct(type_name)
        options = spec.get("options")
        if options is None:
            return condition
        if not isinstance(options, Mapping):
            raise ConditionSyntaxError(f"{type_name} 'options' must be a dict")
        return condition.with_options(dict(options))


_default_registry: ConditionRegistry | None = None


def get_default_registry() -> ConditionRegistry:
    """Return the default condition registry with all built-in conditions
    pre-registered.

    The default registry is lazily initialized on first access and cached
    for subsequent calls. Register custom conditions on it to make them
    available to every loader that does not get an explicit registry.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = ConditionRegistry()
        register_builtin_conditions(_default_registry)
    return _default_registry


def register_builtin_conditions(registry: ConditionRegistry) -> None:
    """Register every built-in condition type with ``registry``."""
    for cls in BUILTIN_CONDITIONS:
        registry.register(cls.type_name, cls)


def dump_condition(condition: Condition) -> dict[str, Any]:
    data: dict[str, Any] = {"type": condition.name()}
    options = condition.options()
    if options:
        data["options"] = options
    return data


def dump_conditions(conditions: Mapping[str, Condition]) -> dict[str, dict[str, Any]]:
    """Serialize conditions to JSON-compatible dicts.

    Each entry becomes ``{"type": <name>, "options": {...}}``; ``options``
    is left out for conditions without configuration.
    """
    return {key: dump_condition(cond) for key, cond in conditions.items()}


def load_conditions(data: Any, registry: ConditionRegistry | None = None) -> Conditions:
    """Deserialize conditions produced by ``dump_conditions()``.

    Args:
        data: Mapping of condition name to serialized condition. ``None``
            is accepted as an empty mapping.
        registry: Registry used to resolve ``type``. Defaults to
            ``get_default_registry()``.

    Raises:
        ConditionSyntaxError: If ``data`` is not a mapping or any entry is
            invalid. One bad entry fails the whole collection.
        UnknownConditionError: If any entry names an unregistered type.
    """
    registry = registry or get_default_registry()
    if data is None:
        return Conditions()
    if not isinstance(data, Mapping):
        raise ConditionSyntaxError("conditions must be a dict")
    result = Conditions()
    for key, spec in data.items():
        result.add_condition(key, registry.create(spec))
    return result


def conditions_to_json(conditions: Mapping[str, Condition]) -> str:
    return json.dumps(dump_conditions(conditions), sort_keys=True)


def conditions_from_json(text: str, registry: ConditionRegistry | None = None) -> Conditions:
    """Deserialize conditions from a JSON string.

    Raises:
        ConditionSyntaxError: If ``text`` is not valid JSON or an entry is
            invalid.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConditionSyntaxError(str(exc)) from exc
    return load_conditions(data, registry)
