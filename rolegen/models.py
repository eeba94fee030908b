"""
ClusterRole data structures.

Only the fields the generator reads and emits are modelled: apiVersion,
kind, metadata.name and rules (apiGroups, resources, resourceNames,
nonResourceURLs, verbs).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

RBAC_API_VERSION = "rbac.authorization.k8s.io/v1"
CLUSTER_ROLE_KIND = "ClusterRole"
DEFAULT_ROLE_NAME = "restricted-cluster-role"


def _string_list(value: Any, field_name: str) -> List[str]:
    """Coerce a YAML sequence of scalars into a list of strings."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list, got {type(value).__name__}")
    # Unquoted YAML scalars such as 'on' or '1' come back as bool/int
    return ["" if item is None else str(item) for item in value]


@dataclass
class PolicyRule:
    """
    A single RBAC policy rule.

    resourceNames and nonResourceURLs never come out of discovery, but a
    restriction file may use them to narrow a rule, so they are kept and
    only emitted when set.
    """

    api_groups: List[str] = field(default_factory=list)
    resources: List[str] = field(default_factory=list)
    verbs: List[str] = field(default_factory=list)
    resource_names: List[str] = field(default_factory=list)
    non_resource_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        rule: Dict[str, Any] = {
            "apiGroups": list(self.api_groups),
            "resources": list(self.resources),
        }
        if self.resource_names:
            rule["resourceNames"] = list(self.resource_names)
        if self.non_resource_urls:
            rule["nonResourceURLs"] = list(self.non_resource_urls)
        rule["verbs"] = list(self.verbs)
        return rule

    @classmethod
    def from_dict(cls, data: Any) -> "PolicyRule":
        if not isinstance(data, dict):
            raise ValueError(f"rule must be a mapping, got {type(data).__name__}")
        return cls(
            api_groups=_string_list(data.get("apiGroups"), "apiGroups"),
            resources=_string_list(data.get("resources"), "resources"),
            verbs=_string_list(data.get("verbs"), "verbs"),
            resource_names=_string_list(data.get("resourceNames"), "resourceNames"),
            non_resource_urls=_string_list(data.get("nonResourceURLs"), "nonResourceURLs"),
        )


@dataclass
class ClusterRole:
    """A cluster-scoped RBAC role."""

    name: str = ""
    rules: List[PolicyRule] = field(default_factory=list)
    api_version: str = RBAC_API_VERSION
    kind: str = CLUSTER_ROLE_KIND

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the Kubernetes manifest layout, keys in manifest order."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": {"name": self.name},
            "rules": [rule.to_dict() for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Any, defaults: bool = True) -> "ClusterRole":
        """
        Build a ClusterRole from a parsed manifest.

        With defaults=False, missing apiVersion/kind stay empty so that a
        partial override document does not carry values it never set.
        Raises ValueError when the document does not fit the schema.
        """
        if not isinstance(data, dict):
            raise ValueError(f"document must be a mapping, got {type(data).__name__}")

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("'metadata' must be a mapping")

        raw_rules = data.get("rules")
        if raw_rules is None:
            raw_rules = []
        if not isinstance(raw_rules, list):
            raise ValueError(f"'rules' must be a list, got {type(raw_rules).__name__}")

        api_version: Optional[str] = data.get("apiVersion")
        kind: Optional[str] = data.get("kind")
        return cls(
            name=str(metadata.get("name") or ""),
            rules=[PolicyRule.from_dict(rule) for rule in raw_rules],
            api_version=str(api_version) if api_version else (RBAC_API_VERSION if defaults else ""),
            kind=str(kind) if kind else (CLUSTER_ROLE_KIND if defaults else ""),
        )
