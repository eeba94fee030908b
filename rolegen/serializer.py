"""YAML conversion for ClusterRole objects."""

import yaml

from rolegen.errors import SerializationError
from rolegen.models import ClusterRole


def dump_role(role: ClusterRole) -> str:
    """Render a ClusterRole as a YAML manifest."""
    try:
        return yaml.safe_dump(role.to_dict(), default_flow_style=False, sort_keys=False)
    except yaml.YAMLError as e:
        raise SerializationError(f"Error encountered during YAML encoding: {e}") from e


def load_role(text: str, source: str = "<string>") -> ClusterRole:
    """Parse a YAML manifest into a ClusterRole."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SerializationError(f"Unable to parse YAML from {source}: {e}") from e

    try:
        return ClusterRole.from_dict(data)
    except ValueError as e:
        raise SerializationError(f"Unable to read a ClusterRole from {source}: {e}") from e
