"""
policypack CLI entry point.

This module provides the command-line interface for policypack.
"""

from __future__ import annotations

import argparse
import json
import sys

from policypack import __version__
from policypack.config import PackConfig, load_config_from_env
from policypack.engine import build_rule_set, run_evaluation
from policypack.engine.aggregator import RunReport
from policypack.manifests import ManifestLoadError, load_manifests
from policypack.observability import configure_logging, get_logger

logger = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="policypack",
        description="policypack - Compliance rules for Kubernetes, Helm and compute resources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"policypack {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate resource manifests against the rule set",
    )
    validate_parser.add_argument(
        "paths",
        nargs="+",
        help="Manifest files or directories",
    )
    validate_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    validate_parser.add_argument(
        "--workers",
        type=int,
        help="Worker pool size (default: from configuration)",
    )
    validate_parser.add_argument(
        "--config",
        help="Configuration file (JSON or YAML)",
    )
    validate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on documents of unsupported kinds",
    )

    # rules command
    rules_parser = subparsers.add_parser("rules", help="List the rules of the pack")
    rules_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    rules_parser.add_argument(
        "--config",
        help="Configuration file (JSON or YAML)",
    )

    return parser


def _load_config(args: argparse.Namespace) -> PackConfig:
    config_path = getattr(args, "config", None)
    if config_path:
        return PackConfig.from_file(config_path)
    return load_config_from_env()


def _format_report_text(report: RunReport) -> str:
    lines = []
    for violation in report.violations:
        lines.append(
            f"[{violation.enforcement_level.value}] {violation.rule_name} "
            f"{violation.resource_id}"
        )
        lines.append(f"    {violation.message}")

    for error in report.errors:
        lines.append(f"[error] {error}")

    summary = report.summary()
    status = "PASSED" if report.passed else "FAILED"
    lines.append(
        f"{status}: {summary['resources_evaluated']} resources, "
        f"{summary['blocking_violations']} mandatory, "
        f"{summary['advisory_violations']} advisory violations"
    )
    return "\n".join(lines)


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Validate manifests against the rule set.

    Returns:
        Exit code (0 when the run passes, 1 when it fails or errors)
    """
    try:
        config = _load_config(args)
        resources = load_manifests(args.paths, strict=getattr(args, "strict", False))
    except (ManifestLoadError, OSError, ValueError) as e:
        logger.error(f"Validation setup failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report, _ = run_evaluation(resources, config=config, max_workers=args.workers)

    if args.format == "json":
        print(report.to_json())
    else:
        print(_format_report_text(report))

    return 0 if report.passed else 1


def cmd_rules(args: argparse.Namespace) -> int:
    """
    List the rules of the pack.

    Returns:
        Exit code
    """
    try:
        rule_set = build_rule_set(_load_config(args))
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(rule_set.to_list(), indent=2))
        return 0

    for rule in rule_set:
        print(f"{rule.name:<36} {rule.enforcement_level.value:<10} {rule.kind.value}")
        print(f"    {rule.description}")

    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.verbose:
        configure_logging(level="DEBUG" if args.verbose > 1 else "INFO")

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "validate": cmd_validate,
        "rules": cmd_rules,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
