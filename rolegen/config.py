"""Run configuration for the ClusterRole generator."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rolegen.models import DEFAULT_ROLE_NAME

# Environment variable naming the restriction file
RESTRICTIONS_ENV = "RESTRICTIONS"

ROLE_BASE_FILE = "role_base.yaml"      # generated from the discovered API resources
ROLE_MERGED_FILE = "role_merged.yaml"  # base role merged with the restriction file


def default_kube_config() -> Optional[str]:
    """~/.kube/config when a home directory exists."""
    try:
        home = Path.home()
    except RuntimeError:
        return None
    return str(home / ".kube" / "config")


def restrictions_from_env() -> Optional[str]:
    value = os.getenv(RESTRICTIONS_ENV, "").strip()
    return value or None


@dataclass
class GeneratorConfig:
    role_name: str = DEFAULT_ROLE_NAME
    verbose: bool = False
    in_cluster: bool = True
    kube_config: Optional[str] = None
    restrictions_file: Optional[str] = None
    output_dir: str = "."
    base_file_name: str = ROLE_BASE_FILE
    merged_file_name: str = ROLE_MERGED_FILE
    log_file: Optional[str] = None

    @property
    def base_path(self) -> str:
        return os.path.join(self.output_dir, self.base_file_name)

    @property
    def merged_path(self) -> str:
        return os.path.join(self.output_dir, self.merged_file_name)

    @property
    def has_restrictions(self) -> bool:
        return bool(self.restrictions_file)
