"""
Error taxonomy for the ClusterRole generator.

Every error is fatal: the generator stops at the first one and exits
with the error's exit code.
"""


class RoleGenError(Exception):
    """Base class for all generator failures."""

    exit_code = 1


class ClusterConnectionError(RoleGenError):
    """Cannot load cluster configuration or build an API client."""

    exit_code = 2


class DiscoveryError(RoleGenError):
    """The API server resource listing failed."""


class ConfigFileError(RoleGenError):
    """Restriction file is missing, unreadable or malformed."""


class SerializationError(RoleGenError):
    """A ClusterRole could not be converted to or from YAML."""


class InvariantError(RoleGenError):
    """An aggregation key is malformed (a name contains the key delimiter)."""


class OutputError(RoleGenError):
    """An output file could not be written."""
