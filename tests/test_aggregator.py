"""Unit tests for rule aggregation."""

import random

import pytest

from rolegen.aggregator import (
    aggregate_rules,
    build_cluster_role,
    group_verb_key,
    split_group_verb_key,
)
from rolegen.discovery import DiscoveredGroup, RawResource, ResourceEntry, normalize_resources
from rolegen.errors import InvariantError
from rolegen.models import PolicyRule


def _rule_set(rules):
    """Order-insensitive view of a rule list."""
    return {(tuple(r.api_groups), tuple(r.verbs), frozenset(r.resources)) for r in rules}


class TestGroupVerbKey:
    """Test key construction and splitting."""

    def test_verb_order_does_not_matter(self):
        assert group_verb_key("core", ["list", "get"]) == group_verb_key("core", ["get", "list"])

    def test_duplicate_verbs_collapse(self):
        assert group_verb_key("apps", ["get", "get", "list"]) == "apps!get,list"

    def test_split(self):
        assert split_group_verb_key("apps!get,list,watch") == ("apps", ["get", "list", "watch"])

    def test_split_rejects_delimiter_in_group(self):
        with pytest.raises(InvariantError):
            split_group_verb_key("bad!group!get,list")

    def test_split_rejects_missing_delimiter(self):
        with pytest.raises(InvariantError):
            split_group_verb_key("apps")


class TestAggregateRules:
    """Test grouping of entries into policy rules."""

    def test_end_to_end_example(self, sample_groups):
        rules = aggregate_rules(normalize_resources(sample_groups))

        assert rules == [
            PolicyRule(api_groups=[""], resources=["pods", "secrets"], verbs=["get", "list"]),
            PolicyRule(api_groups=["apps"], resources=["deployments"], verbs=["get", "list", "watch"]),
        ]

    def test_end_to_end_example_with_restriction(self, sample_groups):
        rules = aggregate_rules(normalize_resources(sample_groups, restricted=["secrets"]))

        assert rules == [
            PolicyRule(api_groups=[""], resources=["pods"], verbs=["get", "list"]),
            PolicyRule(api_groups=["apps"], resources=["deployments"], verbs=["get", "list", "watch"]),
        ]

    def test_verb_order_insensitive(self):
        entries = normalize_resources([DiscoveredGroup("v1", [
            RawResource("pods", ["list", "get"]),
            RawResource("services", ["get", "list"]),
        ])])

        rules = aggregate_rules(entries)

        assert len(rules) == 1
        assert rules[0].resources == ["pods", "services"]
        assert rules[0].verbs == ["get", "list"]

    def test_same_verbs_different_groups_stay_apart(self):
        entries = [
            ResourceEntry("core", "pods", ("get",)),
            ResourceEntry("metrics.k8s.io", "pods", ("get",)),
        ]

        rules = aggregate_rules(entries)

        assert [r.api_groups for r in rules] == [[""], ["metrics.k8s.io"]]

    def test_resources_unioned_across_versions(self):
        """The same resource served by two versions of a group appears once."""
        entries = normalize_resources([
            DiscoveredGroup("autoscaling/v2", [RawResource("horizontalpodautoscalers", ["get", "list"])]),
            DiscoveredGroup("autoscaling/v1", [RawResource("horizontalpodautoscalers", ["list", "get"])]),
        ])

        rules = aggregate_rules(entries)

        assert rules == [PolicyRule(["autoscaling"], ["horizontalpodautoscalers"], ["get", "list"])]

    def test_first_seen_rule_order(self):
        entries = [
            ResourceEntry("apps", "deployments", ("get",)),
            ResourceEntry("core", "pods", ("get", "list")),
            ResourceEntry("apps", "statefulsets", ("get",)),
            ResourceEntry("batch", "jobs", ("create",)),
        ]

        rules = aggregate_rules(entries)

        assert [(r.api_groups[0], r.verbs) for r in rules] == [
            ("apps", ["get"]),
            ("", ["get", "list"]),
            ("batch", ["create"]),
        ]

    def test_no_duplicate_signatures(self):
        entries = [
            ResourceEntry(group, f"res{i}", verbs)
            for i, (group, verbs) in enumerate([
                ("core", ("get",)), ("core", ("get",)), ("apps", ("get",)),
                ("core", ("get", "list")), ("apps", ("get",)),
            ])
        ]

        rules = aggregate_rules(entries)
        signatures = [(tuple(r.api_groups), tuple(r.verbs)) for r in rules]

        assert len(signatures) == len(set(signatures)) == 3

    def test_resources_have_no_duplicates(self):
        entries = [ResourceEntry("core", "pods", ("get",))] * 3

        assert aggregate_rules(entries)[0].resources == ["pods"]

    def test_deterministic_regardless_of_input_order(self):
        entries = [
            ResourceEntry("core", name, verbs)
            for name, verbs in [
                ("pods", ("get", "list")), ("secrets", ("get", "list")),
                ("nodes", ("get",)), ("events", ("create", "get")),
                ("configmaps", ("get", "list")), ("endpoints", ("get",)),
            ]
        ] + [ResourceEntry("apps", "deployments", ("get", "list"))]
        shuffled = entries[:]
        random.Random(7).shuffle(shuffled)

        assert _rule_set(aggregate_rules(entries)) == _rule_set(aggregate_rules(shuffled))

    def test_repeated_runs_identical(self, sample_groups):
        first = aggregate_rules(normalize_resources(sample_groups))
        second = aggregate_rules(normalize_resources(sample_groups))

        assert first == second

    def test_entries_without_verbs_skipped(self):
        entries = [
            ResourceEntry("core", "bindings", ()),
            ResourceEntry("core", "pods", ("get",)),
        ]

        assert aggregate_rules(entries) == [PolicyRule([""], ["pods"], ["get"])]

    def test_group_with_delimiter_is_fatal(self):
        with pytest.raises(InvariantError):
            aggregate_rules([ResourceEntry("bad!group", "widgets", ("get",))])

    def test_empty(self):
        assert aggregate_rules([]) == []


class TestBuildClusterRole:
    """Test ClusterRole construction."""

    def test_default_name(self, sample_groups):
        role = build_cluster_role(normalize_resources(sample_groups))

        assert role.name == "restricted-cluster-role"
        assert role.api_version == "rbac.authorization.k8s.io/v1"
        assert role.kind == "ClusterRole"
        assert len(role.rules) == 2

    def test_custom_name(self):
        assert build_cluster_role([], name="viewer").name == "viewer"
