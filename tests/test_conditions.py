import json
from dataclasses import dataclass
from typing import ClassVar, Optional

import pytest

from warden import (
    MISSING,
    BooleanCondition,
    CIDRCondition,
    Condition,
    ConditionRegistry,
    Conditions,
    ConditionSyntaxError,
    DefinedCondition,
    EqualsSubjectCondition,
    Request,
    StringEqualCondition,
    StringMatchCondition,
    StringPairsEqualCondition,
    UnknownConditionError,
    conditions_from_json,
    conditions_to_json,
    dump_conditions,
    get_default_registry,
    load_conditions,
)

REQ = Request(subject="peter", action="delete", resource="myrn:1")


@pytest.mark.parametrize(
    "value,expected",
    [("john@x.com", True), ("", True), (0, True), (False, True), (None, False), (MISSING, False)],
)
def test_defined(value, expected):
    assert DefinedCondition().fulfills(value, REQ) is expected


def test_string_equal():
    cond = StringEqualCondition(equals="admin")
    assert cond.fulfills("admin", REQ)
    assert not cond.fulfills("user", REQ)
    assert not cond.fulfills("Admin", REQ)
    assert not cond.fulfills(MISSING, REQ)
    assert not cond.fulfills(None, REQ)
    assert StringEqualCondition(equals="42").fulfills(42, REQ)
    assert StringEqualCondition(equals="true").fulfills(True, REQ)


def test_string_equal_empty_target_distinguishes_missing():
    cond = StringEqualCondition(equals="")
    assert cond.fulfills("", REQ)
    assert not cond.fulfills(MISSING, REQ)


def test_equals_subject():
    cond = EqualsSubjectCondition()
    assert cond.fulfills("peter", REQ)
    assert not cond.fulfills("zac", REQ)
    assert not cond.fulfills(MISSING, REQ)
    assert not cond.fulfills(None, Request())


@pytest.mark.parametrize(
    "cidr,value,expected",
    [
        ("127.0.0.1/32", "127.0.0.1", True),
        ("127.0.0.1/32", "0.0.0.0", False),
        ("127.0.0.1/0", "8.8.8.8", True),
        ("10.0.0.0/8", "10.20.30.40", True),
        ("10.0.0.0/8", "11.0.0.1", False),
        ("2001:db8::/32", "2001:db8::1", True),
        ("2001:db8::/32", "10.0.0.1", False),
        ("127.0.0.1/32", "::ffff:127.0.0.1", True),
        ("10.0.0.0/8", "::ffff:11.0.0.1", False),
        ("10.0.0.0/8", "not-an-ip", False),
        ("10.0.0.0/8", "", False),
        ("bogus", "10.0.0.1", False),
        ("10.0.0.0/8", None, False),
        ("10.0.0.0/8", MISSING, False),
    ],
)
def test_cidr(cidr, value, expected):
    assert CIDRCondition(cidr=cidr).fulfills(value, REQ) is expected


def test_string_match():
    cond = StringMatchCondition(matches="^[a-z]+@example\\.com$")
    assert cond.fulfills("max@example.com", REQ)
    assert not cond.fulfills("max@example.org", REQ)
    assert not cond.fulfills(MISSING, REQ)
    assert not StringMatchCondition(matches="(").fulfills("(", REQ)


def test_boolean():
    assert BooleanCondition(value=True).fulfills(True, REQ)
    assert not BooleanCondition(value=True).fulfills(False, REQ)
    assert not BooleanCondition(value=True).fulfills("true", REQ)
    assert not BooleanCondition(value=False).fulfills(MISSING, REQ)


def test_string_pairs_equal():
    cond = StringPairsEqualCondition()
    assert cond.fulfills([["a", "a"], ["b", "b"]], REQ)
    assert cond.fulfills([], REQ)
    assert not cond.fulfills([["a", "b"]], REQ)
    assert not cond.fulfills([["a"]], REQ)
    assert not cond.fulfills([["1", 1]], REQ)
    assert not cond.fulfills("aa", REQ)
    assert not cond.fulfills(MISSING, REQ)


def test_conditions_add():
    cs = Conditions()
    c = CIDRCondition()
    cs.add_condition("clientIP", c)
    assert cs["clientIP"] is c


def test_names_and_options():
    assert CIDRCondition(cidr="1.2.3.4/32").name() == "CIDRCondition"
    assert CIDRCondition(cidr="1.2.3.4/32").options() == {"cidr": "1.2.3.4/32"}
    assert DefinedCondition().options() is None
    assert EqualsSubjectCondition().options() is None


def test_dump_omits_options_for_unconfigured():
    cs = Conditions(
        {"clientIP": CIDRCondition(cidr="127.0.0.1/0"), "owner": EqualsSubjectCondition()}
    )
    assert dump_conditions(cs) == {
        "clientIP": {"type": "CIDRCondition", "options": {"cidr": "127.0.0.1/0"}},
        "owner": {"type": "EqualsSubjectCondition"},
    }


def test_load_conditions():
    cs = conditions_from_json(
        """{
        "owner": {"type": "EqualsSubjectCondition"},
        "clientIP": {"type": "CIDRCondition", "options": {"cidr": "127.0.0.1/0"}},
        "user": {"type": "DefinedCondition"},
        "role": {"type": "StringEqualCondition", "options": {"equals": "admin"}}
    }"""
    )
    assert len(cs) == 4
    assert isinstance(cs["owner"], EqualsSubjectCondition)
    assert isinstance(cs["clientIP"], CIDRCondition)
    assert isinstance(cs["user"], DefinedCondition)
    assert isinstance(cs["role"], StringEqualCondition)
    assert cs["role"].equals == "admin"


def test_round_trip_preserves_behavior():
    original = Conditions(
        {
            "clientIP": CIDRCondition(cidr="192.168.0.0/16"),
            "owner": EqualsSubjectCondition(),
            "user": DefinedCondition(),
            "role": StringEqualCondition(equals="admin"),
            "email": StringMatchCondition(matches="@corp$"),
            "mfa": BooleanCondition(value=True),
            "pairs": StringPairsEqualCondition(),
        }
    )
    restored = conditions_from_json(conditions_to_json(original))
    assert restored == original

    samples = [MISSING, None, "", "peter", "admin", "192.168.1.1", "a@corp", True, [["x", "x"]]]
    for key, cond in original.items():
        for value in samples:
            assert restored[key].fulfills(value, REQ) == cond.fulfills(value, REQ)


def test_unknown_type_fails_whole_collection():
    with pytest.raises(UnknownConditionError):
        load_conditions({"user": {"type": "DefinedCondition"}, "x": {"type": "Nope"}})


@pytest.mark.parametrize(
    "spec",
    [
        "DefinedCondition",
        {},
        {"type": ""},
        {"type": "CIDRCondition", "options": "127.0.0.1/32"},
        {"type": "CIDRCondition", "options": {"network": "127.0.0.1/32"}},
        {"type": "BooleanCondition", "options": {"value": "yes"}},
    ],
)
def test_invalid_specs(spec):
    with pytest.raises(ConditionSyntaxError):
        load_conditions({"c": spec})


def test_invalid_json():
    with pytest.raises(ConditionSyntaxError):
        conditions_from_json("{not json")


def test_registry_construct_and_unknown():
    registry = get_default_registry()
    assert registry.construct("CIDRCondition") == CIDRCondition()
    with pytest.raises(UnknownConditionError):
        registry.construct("NoSuchCondition")


@dataclass(frozen=True)
class PrefixCondition(Condition):
    type_name: ClassVar[str] = "PrefixCondition"
    prefix: str = ""

    def fulfills(self, value, request):
        return isinstance(value, str) and value.startswith(self.prefix)


def test_custom_condition_registration():
    registry = ConditionRegistry()
    with pytest.raises(UnknownConditionError):
        load_conditions({"path": {"type": "PrefixCondition"}}, registry)

    registry.register("PrefixCondition", PrefixCondition)
    assert "PrefixCondition" in registry
    cs = load_conditions({"path": {"type": "PrefixCondition", "options": {"prefix": "/home"}}}, registry)
    assert cs["path"].fulfills("/home/max", REQ)
    assert not cs["path"].fulfills("/etc", REQ)
    assert dump_conditions(cs) == {"path": {"type": "PrefixCondition", "options": {"prefix": "/home"}}}

    registry.unregister("PrefixCondition")
    assert "PrefixCondition" not in registry


def test_dump_is_json_serializable():
    cs = Conditions({"clientIP": CIDRCondition(cidr="127.0.0.1/32")})
    assert json.loads(conditions_to_json(cs)) == dump_conditions(cs)


@dataclass(frozen=True)
class TagsCondition(Condition):
    type_name: ClassVar[str] = "TagsCondition"
    tags: tuple[str, ...] = ()
    limit: Optional[int] = None
    ratio: float = 0.0

    def fulfills(self, value, request):
        return value in self.tags


def _tags_registry():
    registry = ConditionRegistry()
    registry.register("TagsCondition", TagsCondition)
    return registry


def test_custom_condition_with_optional_tuple_and_float_fields_round_trips():
    registry = _tags_registry()
    original = Conditions({"t": TagsCondition(tags=("a", "b"), limit=5, ratio=1.5)})
    restored = conditions_from_json(conditions_to_json(original), registry)
    assert restored == original
    assert restored["t"].tags == ("a", "b")
    assert restored["t"].fulfills("a", REQ)
    assert not restored["t"].fulfills("c", REQ)


def test_custom_condition_options_are_coerced_from_json():
    registry = _tags_registry()
    cs = load_conditions(
        {"t": {"type": "TagsCondition", "options": {"tags": ["x"], "limit": None, "ratio": 2}}}, registry
    )
    assert cs["t"] == TagsCondition(tags=("x",), limit=None, ratio=2.0)
    assert isinstance(cs["t"].ratio, float)


@pytest.mark.parametrize(
    "options",
    [{"tags": "x"}, {"tags": [1]}, {"limit": "5"}, {"limit": True}, {"ratio": "1.0"}],
)
def test_custom_condition_rejects_mismatched_options(options):
    with pytest.raises(ConditionSyntaxError):
        load_conditions({"t": {"type": "TagsCondition", "options": options}}, _tags_registry())
