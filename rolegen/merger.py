"""
Merge an override ClusterRole onto a generated base role.

Scalar fields set in the override win over the base. Rules are additive:
the override's rules are appended after the base rules, and the API
server takes the union of their permissions. The merged role always
carries the name it is deployed under, whatever the override calls it.
"""
import copy
import logging

from rolegen.models import ClusterRole

logger = logging.getLogger(__name__)


def _pick(override_value: str, base_value: str) -> str:
    return override_value if override_value else base_value


def merge_roles(base: ClusterRole, override: ClusterRole, name: str) -> ClusterRole:
    """Return a new ClusterRole with override merged onto base, named `name`."""
    merged = ClusterRole(
        name=_pick(override.name, base.name),
        rules=copy.deepcopy(base.rules) + copy.deepcopy(override.rules),
        api_version=_pick(override.api_version, base.api_version),
        kind=_pick(override.kind, base.kind),
    )
    if merged.name != name:
        logger.debug(f"Renaming merged role '{merged.name}' to '{name}'")
    merged.name = name

    logger.info(f"Merged {len(base.rules)} base rules with {len(override.rules)} override rules")
    return merged
