#!/usr/bin/env python3
"""
k8s-role-gen - generate a least-privilege ClusterRole from cluster discovery.

Discovers every API resource the cluster serves, groups resources that
share an API group and verb set into one rule each, and writes the result
to role_base.yaml. With a restriction file (--restrictions or the
RESTRICTIONS environment variable) the listed resources are left out of
the discovered rules, the file's own rules are merged in, and the result
is written to role_merged.yaml.

Exit codes:
    0 - Role generated
    1 - Discovery, restriction file, serialization or output failure
    2 - Cannot connect to the cluster
"""
import argparse
import logging
import logging.handlers
import sys
from typing import List, Optional

# ASCII banner generation
from pyfiglet import Figlet

# Rich library for colored and styled CLI output
from rich.console import Console
from rich.panel import Panel

# Prompts for interactive mode
import questionary

from rolegen.config import GeneratorConfig, default_kube_config, restrictions_from_env
from rolegen.generator import RoleGenerator
from rolegen.models import DEFAULT_ROLE_NAME

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Everything but the generated YAML goes to stderr
console = Console(stderr=True)


def show_banner():
    figlet = Figlet(font='slant')
    banner = figlet.renderText('RoleGen')
    console.print(f"[bold red]{banner}[/bold red]")
    console.print("[red]Least-privilege ClusterRole generator[/red]\n")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Log to stderr (warnings only unless verbose) and optionally to a rotating file."""
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers: List[logging.Handler] = [stream_handler]

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
    # Client library request tracing drowns out resource tracing
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8s-role-gen",
        description="Generate a least-privilege ClusterRole from the cluster's API discovery.",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--name', default=DEFAULT_ROLE_NAME,
        help=f"Override the name of the ClusterRole resource that is generated (default: {DEFAULT_ROLE_NAME})"
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Enable verbose logging of every discovered group and resource'
    )
    parser.add_argument(
        '--in-cluster', dest='in_cluster', action=argparse.BooleanOptionalAction, default=True,
        help='Use the in-cluster service account configuration'
    )
    parser.add_argument(
        '--kubeconfig', dest='kube_config', default=default_kube_config(),
        help='Path to the kubeconfig file, used with --no-in-cluster'
    )
    parser.add_argument(
        '--restrictions', default=restrictions_from_env(),
        help='Restriction file (.yaml, .yml or .json); defaults to $RESTRICTIONS'
    )
    parser.add_argument(
        '--output-dir', dest='output_dir', default='.',
        help='Directory for role_base.yaml and role_merged.yaml (default: current directory)'
    )
    parser.add_argument(
        '--log-file', dest='log_file',
        help='Also write logs to this file (rotated at 10MB)'
    )
    parser.add_argument(
        '--interactive', '-i', action='store_true',
        help='Prompt for the role name, restriction file and connection mode'
    )
    return parser


def build_config(args: argparse.Namespace) -> GeneratorConfig:
    return GeneratorConfig(
        role_name=args.name,
        verbose=args.verbose,
        in_cluster=args.in_cluster,
        kube_config=args.kube_config,
        restrictions_file=args.restrictions or None,
        output_dir=args.output_dir,
        log_file=args.log_file,
    )


def prompt_for_config(cfg: GeneratorConfig) -> Optional[GeneratorConfig]:
    """Let the user adjust the run configuration. Returns None if cancelled."""
    name = questionary.text("ClusterRole name:", default=cfg.role_name).ask()
    if name is None:
        return None
    cfg.role_name = name.strip() or cfg.role_name

    restrictions = questionary.text(
        "Restriction file (leave empty for none):",
        default=cfg.restrictions_file or ""
    ).ask()
    if restrictions is None:
        return None
    cfg.restrictions_file = restrictions.strip() or None

    in_cluster = questionary.confirm("Use in-cluster configuration?", default=cfg.in_cluster).ask()
    if in_cluster is None:
        return None
    cfg.in_cluster = in_cluster

    if not cfg.in_cluster:
        kube_config = questionary.text("Path to kubeconfig:", default=cfg.kube_config or "").ask()
        if kube_config is None:
            return None
        cfg.kube_config = kube_config.strip() or None

    console.print(Panel(
        f"Role name: {cfg.role_name}\n"
        f"Restriction file: {cfg.restrictions_file or '-'}\n"
        f"Connection: {'in-cluster' if cfg.in_cluster else cfg.kube_config or 'default kubeconfig'}\n"
        f"Output: {cfg.base_path}" + (f", {cfg.merged_path}" if cfg.has_restrictions else ""),
        title="Generation Settings"
    ))
    proceed = questionary.confirm("Generate ClusterRole?", default=True).ask()
    if not proceed:
        return None
    return cfg


def main(argv: Optional[List[str]] = None, discovery=None) -> int:
    args = build_parser().parse_args(argv)
    cfg = build_config(args)
    setup_logging(cfg.verbose, cfg.log_file)

    if args.interactive:
        show_banner()
        cfg = prompt_for_config(cfg)
        if cfg is None:
            console.print("[yellow]Generation cancelled.[/yellow]")
            return 0

    return RoleGenerator(cfg, discovery=discovery).run()


def cli():
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)


# Entry point
if __name__ == "__main__":
    cli()
