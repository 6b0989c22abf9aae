"""
Command-line interface for craft-audit.

Provides commands for scanning Craft CMS templates, applying fixes,
creating a configuration file, and listing the available rules.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from craftaudit import __version__
from craftaudit.config import ScanConfig, create_default_config, load_scan_config
from craftaudit.core.engine import ScanEngine
from craftaudit.core.findings import Severity
from craftaudit.core.metadata import get_rule_info
from craftaudit.core.rules import registry
from craftaudit.errors import CraftAuditError
from craftaudit.formatters import CLIFormatter, get_formatter
from craftaudit.remediation import RemediationEngine

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".craft-audit.yaml"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="craft-audit",
        description="Static analysis for Craft CMS Twig templates.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  craft-audit scan ./templates                 # Scan a template directory
  craft-audit scan _layout.twig                # Scan a single template
  craft-audit scan . --format json             # Output as JSON
  craft-audit scan . --severity medium         # Only medium+ severity
  craft-audit fix ./templates --dry-run        # Show safe fixes as a diff
  craft-audit init                             # Create config file
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Scan templates for issues")
    scan_parser.add_argument(
        "target",
        nargs="?",
        default=".",
        help="Template file or directory to scan (default: current directory)",
    )
    scan_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    scan_parser.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        help="Output format (default: text)",
    )
    scan_parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    scan_parser.add_argument(
        "-s", "--severity",
        choices=[s.value for s in Severity],
        help="Minimum severity to report (default: info)",
    )
    scan_parser.add_argument(
        "--exclude",
        action="append",
        help="Exclude patterns (can be specified multiple times)",
    )
    scan_parser.add_argument(
        "-j", "--jobs",
        type=int,
        help="Number of parallel workers (default: 4)",
    )
    scan_parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    scan_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output and debug logging",
    )

    # Fix command
    fix_parser = subparsers.add_parser("fix", help="Apply automatic fixes")
    fix_parser.add_argument(
        "target",
        nargs="?",
        default=".",
        help="Template file or directory",
    )
    fix_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    fix_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show fixes without applying them",
    )
    fix_parser.add_argument(
        "--unsafe",
        action="store_true",
        help="Also apply fixes that may change rendered output",
    )
    fix_parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Don't create .bak files",
    )
    fix_parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    fix_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )

    # Init command
    init_parser = subparsers.add_parser("init", help="Create a configuration file")
    init_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing config file",
    )

    # List-rules command
    subparsers.add_parser("list-rules", help="List available rules")

    return parser


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(args: argparse.Namespace) -> ScanConfig:
    start_dir = args.target if os.path.isdir(args.target) else os.path.dirname(os.path.abspath(args.target))
    return load_scan_config(args.config, start_dir=start_dir)


def _fix_root(target: str) -> str:
    return target if os.path.isdir(target) else os.path.dirname(target) or "."


def cmd_scan(args: argparse.Namespace) -> int:
    """Execute the scan command."""
    config = _load_config(args)

    # Apply command-line overrides
    if args.severity:
        config.severity_threshold = args.severity
    if args.jobs:
        config.max_workers = args.jobs
    if args.exclude:
        config.exclude_patterns = config.exclude_patterns + args.exclude
    if args.format:
        config.output.format = args.format
    if args.output:
        config.output.output_file = args.output
    config.validate()

    engine = ScanEngine(config.to_engine_config())
    logger.debug("Scanning %s", os.path.abspath(args.target))
    result = engine.scan(args.target)

    if config.output.format == "text":
        formatter = get_formatter(
            "text",
            use_color=config.output.color and not args.no_color,
            verbose=args.verbose,
        )
    else:
        formatter = get_formatter(config.output.format)

    output = formatter.format_result(result)

    if config.output.output_file:
        with open(config.output.output_file, "w", encoding="utf-8") as f:
            f.write(output)
        if config.output.format == "text":
            print(f"Results written to {config.output.output_file}")
    else:
        print(output)

    # Return exit code based on findings
    return 1 if result.high_count > 0 else 0


def cmd_fix(args: argparse.Namespace) -> int:
    """Execute the fix command."""
    config = _load_config(args)

    engine = ScanEngine(config.to_engine_config())
    result = engine.scan(args.target)

    if result.total_findings == 0:
        print("No findings to fix!")
        return 0

    remediation_engine = RemediationEngine({
        "dry_run": args.dry_run or config.fix.dry_run,
        "backup": config.fix.backup and not args.no_backup,
        "allow_unsafe": args.unsafe or config.fix.allow_unsafe,
    })

    plan = remediation_engine.plan(result.findings)
    results = remediation_engine.apply(result.findings, root=_fix_root(args.target), plan=plan)

    formatter = CLIFormatter(use_color=not args.no_color)
    print(formatter.format_fix_results(results, dry_run=remediation_engine.dry_run))

    if plan.unsafe_skipped:
        print(f"{len(plan.unsafe_skipped)} unsafe fixes skipped (use --unsafe to apply them)")
    if plan.manual:
        print(f"{len(plan.manual)} findings have no automatic fix and need manual review")
    if remediation_engine.dry_run:
        print("[DRY RUN] No files were modified.")

    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Execute the init command."""
    if os.path.exists(DEFAULT_CONFIG_FILE) and not args.force:
        print(f"Configuration file {DEFAULT_CONFIG_FILE} already exists.")
        print("Use --force to overwrite.")
        return 1

    with open(DEFAULT_CONFIG_FILE, "w", encoding="utf-8") as f:
        f.write(create_default_config())

    print(f"Created configuration file: {DEFAULT_CONFIG_FILE}")
    return 0


def cmd_list_rules(args: argparse.Namespace) -> int:
    """Execute the list-rules command."""
    detectors = registry.get_detectors()

    print("\nAvailable Rules")
    print("=" * 78)
    for detector in detectors:
        meta = detector.metadata
        info = get_rule_info(meta.pattern)
        print(f"  {info.rule_id:<34} {meta.name:<34} [{meta.severity.value}]")

    print(f"\nTotal: {len(detectors)} rules")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(getattr(args, "verbose", False))

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "scan":
            return cmd_scan(args)
        elif args.command == "fix":
            return cmd_fix(args)
        elif args.command == "init":
            return cmd_init(args)
        elif args.command == "list-rules":
            return cmd_list_rules(args)
        else:
            parser.print_help()
            return 0

    except KeyboardInterrupt:
        print("\nScan interrupted.")
        return 130
    except CraftAuditError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
