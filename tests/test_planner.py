"""Tests for the patch planner."""

from autosecret.annotation import parse
from autosecret.planner import plan


def test_only_missing_keys_in_spec_order(registry):
    spec = parse("A: default\nB: hex\nC: uuid\nD: default", registry)
    planned = plan({"C", "A", "UNRELATED"}, spec)
    assert [entry.key for entry in planned] == ["B", "D"]


def test_complete_resource_plans_nothing(registry):
    spec = parse("PASSWORD: default", registry)
    assert plan(["PASSWORD", "USERNAME"], spec) == []


def test_empty_resource_plans_everything(registry):
    spec = parse("PASSWORD: default\nTOKEN: hex", registry)
    assert plan([], spec) == list(spec)
