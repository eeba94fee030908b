"""Pytest configuration and shared fixtures for the ClusterRole generator tests."""

import logging
from typing import List

import pytest

from rolegen.config import GeneratorConfig
from rolegen.discovery import DiscoveredGroup, RawResource

# ============================================================================
# Discovery Fixtures
# ============================================================================


class FakeDiscovery:
    """Stands in for ClusterDiscovery with a canned resource listing."""

    def __init__(self, groups: List[DiscoveredGroup], connect_error=None, discovery_error=None):
        self.groups = groups
        self.connect_error = connect_error
        self.discovery_error = discovery_error
        self.connected = False

    def connect(self):
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    def server_resources(self) -> List[DiscoveredGroup]:
        if self.discovery_error:
            raise self.discovery_error
        return self.groups


@pytest.fixture
def sample_groups():
    """Core pods/secrets plus apps deployments."""
    return [
        DiscoveredGroup("v1", [
            RawResource("pods", ["get", "list"]),
            RawResource("secrets", ["get", "list"]),
        ]),
        DiscoveredGroup("apps/v1", [
            RawResource("deployments", ["get", "list", "watch"]),
        ]),
    ]


@pytest.fixture
def fake_discovery(sample_groups):
    return FakeDiscovery(sample_groups)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def generator_config(tmp_path):
    """Config writing into a temporary directory."""
    return GeneratorConfig(output_dir=str(tmp_path))


@pytest.fixture
def restriction_file(tmp_path):
    """Restriction file excluding secrets and granting list/watch on it."""
    path = tmp_path / "restrictions.yaml"
    path.write_text(
        "rules:\n"
        "  - apiGroups: ['']\n"
        "    resources: ['secrets']\n"
        "    verbs: ['list', 'watch']\n"
    )
    return str(path)


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures the root logger; undo that after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
