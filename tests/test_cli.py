import json

from warden.cli import main

POLICIES = json.dumps(
    [
        {"id": "2", "effect": "allow", "subjects": ["max"], "resources": ["<.*>"], "actions": ["update"]},
        {"id": "3", "effect": "deny", "subjects": ["max"], "resources": ["<.*>"], "actions": ["broadcast"]},
    ]
)


def test_allow(capsys):
    code = main(["evaluate", "--policies", POLICIES, "--request", '{"subject": "max", "action": "update"}'])
    assert code == 0
    assert capsys.readouterr().out.strip() == "allow"


def test_explicit_deny(capsys):
    code = main(["evaluate", "--policies", POLICIES, "--request", '{"subject": "max", "action": "broadcast"}'])
    assert code == 3
    assert capsys.readouterr().out.strip() == "deny (explicit_deny)"


def test_default_deny_explain(capsys):
    code = main(
        ["evaluate", "--policies", POLICIES, "--request", '{"subject": "bob", "action": "update"}', "--explain"]
    )
    assert code == 3
    explanation = json.loads(capsys.readouterr().out)
    assert explanation["outcome"] == "default_deny"
    assert explanation["candidates"] == 2


def test_policies_from_file(tmp_path, capsys):
    path = tmp_path / "policies.json"
    path.write_text(POLICIES, encoding="utf-8")
    code = main(["evaluate", "--policies", str(path), "--request", '{"subject": "max", "action": "update"}'])
    assert code == 0


def test_load_errors(capsys):
    assert main(["evaluate", "--policies", "[{}]", "--request", "{}"]) == 4
    assert main(["evaluate", "--policies", POLICIES, "--request", "[]"]) == 4
    assert main(["evaluate", "--policies", POLICIES, "--request", "{bad"]) == 4


def test_unknown_command(capsys):
    assert main(["frobnicate"]) == 2
    assert main([]) == 0
