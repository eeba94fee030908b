"""
Cluster resource discovery.

ClusterDiscovery connects to the API server and returns the raw listing
of every API resource (the same data `kubectl api-resources` is built
from). normalize_resources turns that listing into ResourceEntry tuples
ready for aggregation, dropping restricted resources on the way.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException
from urllib3.exceptions import HTTPError

from rolegen.errors import ClusterConnectionError, DiscoveryError

logger = logging.getLogger(__name__)

# Legacy core API group/version; its resources have no group name
CORE_GROUP_VERSION = "v1"
# Placeholder group name for the core API until rules are emitted
CORE_GROUP = "core"


@dataclass
class RawResource:
    """A resource descriptor as listed by the discovery API."""

    name: str
    verbs: List[str] = field(default_factory=list)


@dataclass
class DiscoveredGroup:
    """All resources served under one group/version, e.g. 'apps/v1'."""

    group_version: str
    resources: List[RawResource] = field(default_factory=list)


@dataclass(frozen=True)
class ResourceEntry:
    """One discovered resource with its sorted, de-duplicated verbs."""

    api_group: str
    resource_name: str
    verbs: tuple


def group_from_group_version(group_version: str) -> str:
    """RBAC rules use the group name only, never the version."""
    if group_version == CORE_GROUP_VERSION:
        return CORE_GROUP
    return group_version.split("/")[0]


def normalize_resources(groups: Iterable[DiscoveredGroup],
                        restricted: Iterable[str] = (),
                        verbose: bool = False) -> List[ResourceEntry]:
    """Flatten discovery output into ResourceEntry tuples, skipping restricted names."""
    restricted_names = set(restricted)
    entries: List[ResourceEntry] = []

    for group in groups:
        if verbose:
            logger.debug(f"Group: {group.group_version}")
        api_group = group_from_group_version(group.group_version)

        for resource in group.resources:
            if verbose:
                logger.debug(f"Resource: {resource.name} - Verbs: {resource.verbs}")
            if resource.name in restricted_names:
                if verbose:
                    logger.debug(f"Skipping restricted resource: {resource.name}")
                continue
            entries.append(ResourceEntry(
                api_group=api_group,
                resource_name=resource.name,
                verbs=tuple(sorted(set(resource.verbs or []))),
            ))

    return entries


def _to_discovered_group(resource_list) -> DiscoveredGroup:
    """Convert a V1APIResourceList into a DiscoveredGroup."""
    return DiscoveredGroup(
        group_version=resource_list.group_version,
        resources=[
            RawResource(name=r.name, verbs=list(r.verbs or []))
            for r in resource_list.resources or []
        ],
    )


class ClusterDiscovery:
    """Lists the API resources served by a cluster."""

    def __init__(self, in_cluster: bool = True, kube_config: Optional[str] = None):
        self.in_cluster = in_cluster
        self.kube_config = kube_config
        self.api_client: Optional[client.ApiClient] = None

    def connect(self) -> client.ApiClient:
        """Load cluster configuration and build the API client."""
        try:
            if self.in_cluster:
                config.load_incluster_config()
                logger.info("Using in-cluster Kubernetes configuration.")
            else:
                if self.kube_config and not os.path.exists(self.kube_config):
                    raise ClusterConnectionError(
                        f"unable to load kubeconfig from {self.kube_config}: file not found")
                config.load_kube_config(config_file=self.kube_config)
                logger.info(f"Using kubeconfig file configuration: {self.kube_config or 'default'}")
            self.api_client = client.ApiClient()
        except ConfigException as e:
            mode = "in-cluster config" if self.in_cluster else f"kubeconfig from {self.kube_config}"
            raise ClusterConnectionError(f"unable to load {mode}: {e}") from e
        except (OSError, ValueError) as e:
            raise ClusterConnectionError(f"unable to create a client: {e}") from e
        return self.api_client

    def _list_group_version(self, group_version: str) -> DiscoveredGroup:
        resource_list = self.api_client.call_api(
            f"/apis/{group_version}", "GET",
            header_params={"Accept": "application/json"},
            response_type="V1APIResourceList",
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
        )
        return _to_discovered_group(resource_list)

    def server_resources(self) -> List[DiscoveredGroup]:
        """
        Return the resources of the core API and of every version of every
        named API group, in the order the server advertises them.
        """
        if self.api_client is None:
            self.connect()

        groups: List[DiscoveredGroup] = []
        try:
            core = client.CoreV1Api(self.api_client).get_api_resources()
            groups.append(_to_discovered_group(core))

            api_groups = client.ApisApi(self.api_client).get_api_versions()
            for api_group in api_groups.groups or []:
                for version in api_group.versions or []:
                    logger.debug(f"Listing resources for {version.group_version}")
                    groups.append(self._list_group_version(version.group_version))
        except ApiException as e:
            raise DiscoveryError(
                f"Error during server resource discovery: {e.status} - {e.reason}") from e
        except (HTTPError, OSError) as e:
            raise DiscoveryError(f"Error during server resource discovery: {e}") from e

        logger.info(f"Discovered {len(groups)} API group versions")
        return groups
