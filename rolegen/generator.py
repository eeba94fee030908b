"""
ClusterRole generation pipeline.

Runs the whole flow once, in order: load restrictions, discover the
cluster's API resources, aggregate them into a base role, write it, and
when a restriction file is given merge it onto the base and write the
merged role. Any failure aborts the run.
"""
import logging
import os
import sys
import tempfile
import traceback
from typing import Any, Dict, List, Optional, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rolegen.aggregator import build_cluster_role
from rolegen.config import GeneratorConfig
from rolegen.discovery import ClusterDiscovery, normalize_resources
from rolegen.errors import OutputError, RoleGenError
from rolegen.merger import merge_roles
from rolegen.models import ClusterRole
from rolegen.restrictions import load_restriction_file, override_role, restricted_resources
from rolegen.serializer import dump_role, load_role

# Status output goes to stderr; stdout carries only the generated YAML
console = Console(stderr=True)


def write_file_atomic(path: str, content: str) -> None:
    """Write content to path via a temporary file so readers never see a partial file."""
    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".role-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(content)
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        raise OutputError(f"Unable to write {path}: {e}") from e


class RoleGenerator:
    """Generates the base and merged ClusterRole documents for one cluster."""

    def __init__(self, generator_config: GeneratorConfig,
                 discovery: Optional[Any] = None,
                 stdout: Optional[TextIO] = None):
        self.config = generator_config
        self.discovery = discovery or ClusterDiscovery(
            in_cluster=generator_config.in_cluster,
            kube_config=generator_config.kube_config,
        )
        self.stdout = stdout
        self.logger = logging.getLogger(__name__)

    def _echo(self, text: str) -> None:
        print(text, file=self.stdout or sys.stdout)

    def _load_restrictions(self) -> Optional[Dict[str, Any]]:
        if not self.config.has_restrictions:
            return None
        return load_restriction_file(self.config.restrictions_file)

    def generate(self) -> ClusterRole:
        """Run the pipeline and return the final role (merged when restricted)."""
        cfg = self.config

        # A broken restriction file must stop the run before anything is written
        restriction_document = self._load_restrictions()
        restricted: List[str] = []
        if restriction_document is not None:
            restricted = restricted_resources(restriction_document)
            self.logger.info(f"Excluding {len(set(restricted))} restricted resources")

        self.discovery.connect()
        console.print("[green]✓[/green] Connected to cluster")

        groups = self.discovery.server_resources()
        entries = normalize_resources(groups, restricted, verbose=cfg.verbose)
        base_role = build_cluster_role(entries, name=cfg.role_name)
        console.print(f"[green]✓[/green] Generated {len(base_role.rules)} rules "
                      f"from {len(entries)} resources")

        base_yaml = dump_role(base_role)
        write_file_atomic(cfg.base_path, base_yaml)
        console.print(f"[green]✓[/green] Base role written to {cfg.base_path}")

        if restriction_document is None:
            self._echo(base_yaml)
            return base_role

        # Merge against the role as written, not the in-memory object
        base = load_role(base_yaml, source=cfg.base_path)
        override = override_role(restriction_document, source=cfg.restrictions_file)
        merged = merge_roles(base, override, cfg.role_name)
        merged_yaml = dump_role(merged)
        write_file_atomic(cfg.merged_path, merged_yaml)
        console.print(f"[green]✓[/green] Merged role written to {cfg.merged_path}")

        self._echo(merged_yaml)
        return merged

    def display_rules(self, role: ClusterRole) -> None:
        """Print the role's rules as a table on the status console."""
        if not role.rules:
            console.print("[yellow]No rules generated[/yellow]")
            return

        table = Table(title=f"ClusterRole {role.name} ({len(role.rules)} rules)")
        table.add_column("API Group", style="bold")
        table.add_column("Verbs", max_width=40)
        table.add_column("Resources", max_width=60)

        for rule in role.rules:
            table.add_row(
                ", ".join(f'"{g}"' if g == "" else g for g in rule.api_groups),
                ", ".join(rule.verbs),
                ", ".join(rule.resources),
            )
        console.print(table)

    def run(self) -> int:
        """Run the pipeline, report the outcome and return the process exit code."""
        try:
            role = self.generate()
            if self.config.verbose:
                self.display_rules(role)
            return 0
        except RoleGenError as e:
            console.print(f"[red]✗[/red] {escape(str(e))}")
            self.logger.error(f"{type(e).__name__}: {e}")
            return e.exit_code
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            return 1
        except Exception as e:
            console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")
            self.logger.error(f"Unexpected error: {e}\n{traceback.format_exc()}")
            return 1
