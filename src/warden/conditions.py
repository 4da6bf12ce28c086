from __future__ import annotations

import ipaddress
import re
import types
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar, Union, get_args, get_origin, get_type_hints

from .errors import ConditionSyntaxError
from .request import Request, is_present
from .utils import as_string


_MISMATCH = object()


def _coerce_option(value: Any, hint: Any) -> Any:
    """Return ``value`` converted to the field type ``hint``, or ``_MISMATCH``.

    JSON has no tuples and does not tell ``1`` from ``1.0``, so lists are
    accepted for tuple fields and ints for float fields.
    """
    if hint is Any:
        return value
    origin = get_origin(hint)
    args = get_args(hint)

    if origin is Union or origin is types.UnionType:
        for arg in args:
            result = _coerce_option(value, arg)
            if result is not _MISMATCH:
                return result
        return _MISMATCH
    if hint is None or hint is type(None):
        return None if value is None else _MISMATCH
    if hint is bool:
        return value if isinstance(value, bool) else _MISMATCH
    if hint is int:
        return value if isinstance(value, int) and not isinstance(value, bool) else _MISMATCH
    if hint is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return _MISMATCH

    container = origin or hint
    if container in (tuple, list):
        if not isinstance(value, (list, tuple)):
            return _MISMATCH
        if container is tuple and args and args[-1] is not Ellipsis:
            if len(args) != len(value):
                return _MISMATCH
            item_hints = list(args)
        else:
            item_hints = [args[0] if args else Any] * len(value)
        items = [_coerce_option(v, h) for v, h in zip(value, item_hints)]
        if any(item is _MISMATCH for item in items):
            return _MISMATCH
        return container(items)
    if container is dict:
        if not isinstance(value, Mapping):
            return _MISMATCH
        value_hint = args[1] if len(args) == 2 else Any
        items = {k: _coerce_option(v, value_hint) for k, v in value.items()}
        if any(item is _MISMATCH for item in items.values()):
            return _MISMATCH
        return items
    if isinstance(hint, type):
        return value if isinstance(value, hint) else _MISMATCH
    return value


class Condition:
    """Base class for all condition types.

    A condition is a predicate over one named context value of a request.
    Policies attach conditions under caller-chosen names; the engine hands
    each condition the context value stored under that name (or
    ``MISSING``).

    Conditions are immutable: their configuration is fixed when they are
    created, and ``fulfills()`` must not change the condition or the
    request. Subclasses are frozen dataclasses whose fields are the
    condition's options, so they serialize without extra code.

    Attributes:
        type_name: The stable type identifier (e.g. ``"CIDRCondition"``).
            Used as a label and as the ``type`` discriminator when
            conditions are serialized.
    """

    type_name: ClassVar[str] = "Condition"

    def fulfills(self, value: Any, request: Request) -> bool:
        """Return ``True`` if ``value`` satisfies this condition.

        Args:
            value: The context value named by the policy, or ``MISSING`` if
                the request has no such key.
            request: The request being evaluated.

        Raises:
            NotImplementedError: If not overridden by a subclass.
        """
        raise NotImplementedError

    def name(self) -> str:
        return self.type_name

    def options(self) -> dict[str, Any] | None:
        """Return the configuration fields, or ``None`` if there are none."""
        opts = {f.name: getattr(self, f.name) for f in fields(self)}  # type: ignore[arg-type]
        return opts or None

    def with_options(self, options: dict[str, Any]) -> Condition:
        """Return a copy of this condition configured from ``options``.

        Each key must name a field of the condition and each value must fit
        the field's annotation. Optional and union annotations are honored,
        JSON lists are turned into tuples for tuple fields and ints are
        accepted for float fields.

        Raises:
            ConditionSyntaxError: If a key is unknown or a value has the
                wrong type.
        """
        known = {f.name: f for f in fields(self)}  # type: ignore[arg-type]
        try:
            hints = get_type_hints(type(self))
        except (NameError, TypeError):
            hints = {}
        values: dict[str, Any] = {}
        for key, value in options.items():
            if key not in known:
                raise ConditionSyntaxError(f"{self.type_name} has no option '{key}'")
            hint = hints.get(key, known[key].type)
            if isinstance(hint, str):
                # Annotation could not be resolved.
                hint = Any
            coerced = _coerce_option(value, hint)
            if coerced is _MISMATCH:
                raise ConditionSyntaxError(
                    f"{self.type_name} option '{key}' does not fit type {getattr(hint, '__name__', hint)}"
                )
            values[key] = coerced
        return replace(self, **values)  # type: ignore[type-var]


@dataclass(frozen=True)
class DefinedCondition(Condition):
    """Fulfilled if the context value is present and not ``None``.

    The type of the value does not matter; an empty string is defined.
    """

    type_name: ClassVar[str] = "DefinedCondition"

    def fulfills(self, value: Any, request: Request) -> bool:
        return is_present(value)


@dataclass(frozen=True)
class StringEqualCondition(Condition):
    """Fulfilled if the context value, as a string, equals ``equals``.

    Attributes:
        equals: The exact string to compare against.
    """

    type_name: ClassVar[str] = "StringEqualCondition"
    equals: str = ""

    def fulfills(self, value: Any, request: Request) -> bool:
        return is_present(value) and as_string(value) == self.equals


@dataclass(frozen=True)
class EqualsSubjectCondition(Condition):
    """Fulfilled if the context value, as a string, equals the request
    subject."""

    type_name: ClassVar[str] = "EqualsSubjectCondition"

    def fulfills(self, value: Any, request: Request) -> bool:
        return is_present(value) and as_string(value) == request.subject


@dataclass(frozen=True)
class CIDRCondition(Condition):
    """Fulfilled if the context value is an IP address inside ``cidr``.

    Both IPv4 and IPv6 are supported. An IPv4-mapped IPv6 value such as
    ``"::ffff:127.0.0.1"`` is checked as its IPv4 address. Host bits in
    ``cidr`` are ignored, so ``"127.0.0.1/0"`` is accepted. A value that is
    not an address, or a ``cidr`` that is not a network, never fulfills the
    condition.

    Attributes:
        cidr: The network in CIDR notation, e.g. ``"10.0.0.0/8"``.
    """

    type_name: ClassVar[str] = "CIDRCondition"
    cidr: str = ""

    def fulfills(self, value: Any, request: Request) -> bool:
        if not is_present(value):
            return False
        try:
            network = ipaddress.ip_network(self.cidr, strict=False)
            address = ipaddress.ip_address(as_string(value))
        except ValueError:
            return False
        if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
            address = address.ipv4_mapped
        return address in network


@dataclass(frozen=True)
class StringMatchCondition(Condition):
    """Fulfilled if the regular expression ``matches`` is found in the
    context value.

    The expression is searched for, not anchored; use ``^`` and ``$`` to
    require a full match. An invalid expression never matches.
    """

    type_name: ClassVar[str] = "StringMatchCondition"
    matches: str = ""

    def fulfills(self, value: Any, request: Request) -> bool:
        if not is_present(value):
            return False
        try:
            return re.search(self.matches, as_string(value)) is not None
        except re.error:
            return False


@dataclass(frozen=True)
class BooleanCondition(Condition):
    """Fulfilled if the context value is a boolean equal to ``value``."""

    type_name: ClassVar[str] = "BooleanCondition"
    value: bool = False

    def fulfills(self, value: Any, request: Request) -> bool:
        return isinstance(value, bool) and value == self.value


@dataclass(frozen=True)
class StringPairsEqualCondition(Condition):
    """Fulfilled if the context value is a list of two-string pairs and both
    strings of every pair are equal.

    Example context value: ``[["alice", "alice"], ["10", "10"]]``.
    """

    type_name: ClassVar[str] = "StringPairsEqualCondition"

    def fulfills(self, value: Any, request: Request) -> bool:
        if not isinstance(value, (list, tuple)):
            return False
        for pair in value:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                return False
            left, right = pair
            if not isinstance(left, str) or not isinstance(right, str) or left != right:
                return False
        return True


class Conditions(dict):
    """Conditions of a policy, keyed by the context value they inspect.

    Example:
        >>> cs = Conditions()
        >>> cs.add_condition("clientIP", CIDRCondition(cidr="127.0.0.1/32"))
    """

    def add_condition(self, name: str, condition: Condition) -> None:
        """Attach ``condition`` to the context value ``name``."""
        self[name] = condition


BUILTIN_CONDITIONS: tuple[type[Condition], ...] = (
    DefinedCondition,
    StringEqualCondition,
    EqualsSubjectCondition,
    CIDRCondition,
    StringMatchCondition,
    BooleanCondition,
    StringPairsEqualCondition,
)
