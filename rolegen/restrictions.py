"""
Restriction file loading.

A restriction file is a ClusterRole-shaped YAML or JSON document. The
resources named in its rules are removed from the discovered set, and
the whole document is later merged onto the generated role as an
override, so the restricted resources come back with only the verbs the
file grants.

Rules may narrow a grant with resourceNames or nonResourceURLs; both are
kept in the merged role.

Example:

    rules:
      - apiGroups: [""]
        resources: ["secrets"]
        verbs: ["list", "watch"]
      - apiGroups: ["metrics.k8s.io"]
        resources: ["nodes", "pods"]
        verbs: ["get"]
"""
import json
import logging
import os
from typing import Any, Dict, List

import yaml

from rolegen.errors import ConfigFileError
from rolegen.models import ClusterRole

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")


def _parse(f, extension: str) -> Any:
    if extension == ".json":
        return json.load(f)
    return yaml.safe_load(f)


def load_restriction_file(path: str) -> Dict[str, Any]:
    """Read and parse the restriction file, validating its 'rules' list."""
    path = path.strip()
    _, extension = os.path.splitext(path)
    extension = extension.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise ConfigFileError(
            f"Unsupported restriction file type '{extension or path}', "
            f"expected one of: {', '.join(SUPPORTED_EXTENSIONS)}")

    try:
        with open(path, 'r') as f:
            document = _parse(f, extension)
    except FileNotFoundError as e:
        raise ConfigFileError(f"File {path} not found") from e
    except OSError as e:
        raise ConfigFileError(f"Unable to read {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Unable to parse {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigFileError(f"{path} must contain a mapping with a 'rules' list")
    rules = document.get("rules")
    if not isinstance(rules, list):
        raise ConfigFileError(f"{path} has no 'rules' list")
    for index, rule in enumerate(rules):
        if not isinstance(rule, dict):
            raise ConfigFileError(f"{path}: rule {index} is not a mapping")
        resources = rule.get("resources", [])
        if resources is not None and not isinstance(resources, list):
            raise ConfigFileError(f"{path}: rule {index} 'resources' must be a list")
        if resources and any(resource is None for resource in resources):
            raise ConfigFileError(f"{path}: rule {index} 'resources' has an empty entry")

    logger.info(f"Loaded {len(rules)} rules from restriction file {path}")
    return document


def restricted_resources(document: Dict[str, Any]) -> List[str]:
    """All resource names listed under the document's rules, in file order."""
    names: List[str] = []
    for rule in document.get("rules") or []:
        for resource in rule.get("resources") or []:
            if resource is not None:
                names.append(str(resource))
    return names


def override_role(document: Dict[str, Any], source: str = "restriction file") -> ClusterRole:
    """Parse the restriction document as an override ClusterRole."""
    try:
        return ClusterRole.from_dict(document, defaults=False)
    except ValueError as e:
        raise ConfigFileError(f"Unable to read {source} as a ClusterRole: {e}") from e
