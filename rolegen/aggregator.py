"""
Rule aggregation.

Collapses discovered resources into the smallest rule set that grants
exactly the verbs each resource supports: every (API group, verb set)
pair becomes one PolicyRule listing all resources sharing it.
"""
import logging
from typing import Dict, Iterable, List, Set, Tuple

from rolegen.discovery import CORE_GROUP, ResourceEntry
from rolegen.errors import InvariantError
from rolegen.models import DEFAULT_ROLE_NAME, ClusterRole, PolicyRule

logger = logging.getLogger(__name__)

KEY_DELIMITER = "!"
VERB_DELIMITER = ","


def group_verb_key(api_group: str, verbs: Iterable[str]) -> str:
    """Build the aggregation key '<group>!<verb>,<verb>' from sorted, unique verbs."""
    return api_group + KEY_DELIMITER + VERB_DELIMITER.join(sorted(set(verbs)))


def split_group_verb_key(key: str) -> Tuple[str, List[str]]:
    """Split a key back into its group and verb list."""
    parts = key.split(KEY_DELIMITER)
    if len(parts) != 2:
        raise InvariantError(f"Unexpected output from API: {key}")
    group, joined_verbs = parts
    return group, joined_verbs.split(VERB_DELIMITER)


def aggregate_rules(entries: Iterable[ResourceEntry]) -> List[PolicyRule]:
    """
    Group entries by (API group, verb set) into PolicyRules.

    Rules come out in the order their key was first seen; resources within
    a rule are sorted so identical input always yields identical output.
    Entries without verbs are dropped since a rule needs at least one verb.
    """
    resources_by_key: Dict[str, Set[str]] = {}
    key_order: List[str] = []

    for entry in entries:
        if not entry.verbs:
            logger.debug(f"Skipping {entry.api_group}/{entry.resource_name}: no verbs")
            continue
        key = group_verb_key(entry.api_group, entry.verbs)
        if key not in resources_by_key:
            resources_by_key[key] = set()
            key_order.append(key)
        resources_by_key[key].add(entry.resource_name)

    rules: List[PolicyRule] = []
    for key in key_order:
        group, verbs = split_group_verb_key(key)
        # The core API has no group name in RBAC rules
        api_group = "" if group == CORE_GROUP else group
        rules.append(PolicyRule(
            api_groups=[api_group],
            resources=sorted(resources_by_key[key]),
            verbs=verbs,
        ))

    logger.debug(f"Aggregated {len(resources_by_key)} rule signatures")
    return rules


def build_cluster_role(entries: Iterable[ResourceEntry],
                       name: str = DEFAULT_ROLE_NAME) -> ClusterRole:
    """Aggregate entries into a complete ClusterRole."""
    return ClusterRole(name=name, rules=aggregate_rules(entries))
