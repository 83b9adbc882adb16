#!/usr/bin/env python3
"""
whydiag Diagnostics Runner
==========================

Explain why a Linux host is slow, hot, full or misbehaving.

Usage:
    whydiag cpu                       # Why is the CPU busy?
    whydiag cpu --watch --interval 5  # Repeat until Ctrl-C
    whydiag disk /home --depth 2      # What is using space under /home?
    whydiag all --quick               # Every quick module
    whydiag all --format html --output report.html
    whydiag --json mem                # JSON output
    whydiag list                      # Available modules
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from whydiag import __version__
from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.errors import DiagnosticError, ModuleUnavailableError
from whydiag.core.registry import DiagnosticRegistry
from whydiag.core.runner import DiagnosticRunner, ModuleOutcome, run_module, watch_module
from whydiag.core.settings import SettingsManager, build_module_config
from whydiag.modules import build_registry
from whydiag.output.json_output import write_report_json, write_reports_json
from whydiag.output.reporter import DiagnosticReporter
from whydiag.output.terminal import write_report, write_reports
from whydiag.utils.permissions import missing_permissions

logger = logging.getLogger(__name__)

WATCHABLE = ("cpu", "io", "fan", "temp", "batt", "gpu")
OUTPUT_FORMATS = ("terminal", "json", "html", "markdown")
CLEAR_SCREEN = "\033[2J\033[H"

# Module-specific flags: (flags, option key, argparse kwargs).
# Each lands in ModuleConfig.extra_args[key] as a string when given.
MODULE_FLAGS = {
    "cpu": [
        (("--sample",), "sample", dict(type=float, metavar="SECONDS",
                                       help="CPU sampling window (default 0.2)")),
    ],
    "mem": [
        (("--no-swap",), "swap", dict(action="store_const", const="false",
                                      help="Skip swap analysis")),
    ],
    "disk": [
        (("path",), "path", dict(nargs="?", help="Directory to analyze (default /)")),
        (("--depth",), "depth", dict(type=int, metavar="N", help="Maximum walk depth (max 5)")),
        (("--old",), "old", dict(type=int, metavar="DAYS", help="List files older than DAYS")),
        (("--large",), "large", dict(metavar="SIZE", help="List files at least SIZE (e.g. 100M, 1G)")),
        (("--hidden",), "hidden", dict(action="store_const", const="true",
                                       help="Include hidden files and directories")),
    ],
    "io": [
        (("--device",), "device", dict(help="Only show devices whose name contains DEVICE")),
    ],
    "net": [
        (("--host",), "host", dict(help="Host to ping (default 8.8.8.8)")),
        (("--count",), "count", dict(type=int, metavar="N", help="Number of pings (default 3)")),
    ],
    "fan": [
        (("--threshold",), "threshold", dict(type=float, metavar="CELSIUS",
                                             help="Report fans while any sensor is at or above CELSIUS")),
    ],
    "temp": [
        (("--critical",), "critical", dict(action="store_const", const="true",
                                           help="Only show sensors at critical temperature")),
    ],
    "batt": [
        (("--detailed",), "detailed", dict(action="store_const", const="true",
                                           help="Include energy and power draw")),
    ],
    "sleep": [
        (("--no-inhibitors",), "inhibitors", dict(action="store_const", const="false",
                                                  help="Skip the systemd-inhibit check")),
    ],
    "usb": [
        (("--device",), "device", dict(help="Only show devices matching DEVICE")),
        (("--dmesg",), "dmesg", dict(action="store_const", const="true",
                                     help="Scan the kernel log for USB errors")),
    ],
    "mount": [
        (("--mountpoint",), "mountpoint", dict(help="Only show mount points containing MOUNTPOINT")),
        (("--nfs",), "nfs", dict(action="store_const", const="true", help="List NFS mounts")),
        (("--options",), "options", dict(action="store_const", const="true",
                                         help="Show mount options per mount point")),
    ],
}


def positive_int(text: str) -> int:
    """argparse type for counts that must be at least 1."""
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {text}")
    return value


def _add_common_flags(parser: argparse.ArgumentParser, suppress: bool) -> None:
    """Flags accepted both before and after the subcommand."""
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False
    parser.add_argument("--json", action="store_true", default=flag_default,
                        help="Output results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", default=flag_default,
                        help="Include low-priority findings")
    parser.add_argument("--no-color", action="store_true", default=flag_default,
                        help="Disable coloured output")
    parser.add_argument("--quiet", "-q", action="store_true", default=flag_default,
                        help="Minimal output (one line per report, errors only in logs)")
    parser.add_argument("--debug", action="store_true", default=flag_default,
                        help="Debug logging")
    parser.add_argument("--config", metavar="PATH", default=default,
                        help="Settings file (default $WHYDIAG_CONFIG or ~/.config/whydiag/config.yaml)")


def _option_dest(key: str) -> str:
    return f"opt_{key}"


def build_parser(registry: DiagnosticRegistry) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whydiag",
        description="Explain why a Linux system misbehaves",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  whydiag cpu --watch            # Live CPU explanation
  whydiag disk /var --large 1G   # Large files under /var
  whydiag all --quick            # Skip slow modules
  whydiag all --format markdown --output report.md
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_common_flags(parser, suppress=False)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    for module in registry:
        sub = subparsers.add_parser(module.name, help=module.description, description=module.description)
        _add_common_flags(sub, suppress=True)
        sub.add_argument("--top", type=positive_int, metavar="N", help="Number of top entries to show")
        if module.name in WATCHABLE:
            sub.add_argument("--watch", "-w", action="store_true", help="Repeat until interrupted")
            sub.add_argument("--interval", type=float, metavar="SECONDS",
                             help="Seconds between repeats (default 2)")
        for flags, key, kwargs in MODULE_FLAGS.get(module.name, []):
            if flags[0].startswith("-"):
                sub.add_argument(*flags, dest=_option_dest(key), **kwargs)
            else:
                sub.add_argument(_option_dest(key), metavar=key.upper(), **kwargs)

    all_parser = subparsers.add_parser("all", help="Run every module in order")
    _add_common_flags(all_parser, suppress=True)
    all_parser.add_argument("--quick", action="store_true", help="Skip slow modules")
    all_parser.add_argument("--format", choices=OUTPUT_FORMATS, help="Output format")
    all_parser.add_argument("--output", "-o", metavar="FILE", help="Write the report to FILE")
    all_parser.add_argument("--top", type=positive_int, metavar="N", help="Number of top entries to show")

    list_parser = subparsers.add_parser("list", help="List available modules")
    _add_common_flags(list_parser, suppress=True)

    return parser


def setup_logging(args: argparse.Namespace, settings: SettingsManager) -> None:
    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.INFO
    else:
        level = getattr(logging, str(settings.get("logging.level", "WARNING")).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


def extra_args_from(args: argparse.Namespace, module_name: str) -> Dict[str, str]:
    extras = {}
    for _, key, _ in MODULE_FLAGS.get(module_name, []):
        value = getattr(args, _option_dest(key), None)
        if value is not None:
            extras[key] = str(value)
    return extras


def warn_missing_permissions(module: BaseDiagnostic) -> None:
    missing = missing_permissions(module.required_permissions())
    if missing:
        logger.warning(f"{module.name}: running without {', '.join(str(p) for p in missing)}; "
                       f"results may be incomplete")


def use_color(args: argparse.Namespace, settings: SettingsManager) -> bool:
    return bool(settings.get("output.color", True)) and not args.no_color and sys.stdout.isatty()


def list_modules(registry: DiagnosticRegistry) -> int:
    print("\nAvailable Diagnostics:")
    print("=" * 60)
    for module in registry:
        markers = []
        if not module.is_quick:
            markers.append("slow")
        if not module.is_available():
            markers.append("unavailable")
        suffix = f" ({', '.join(markers)})" if markers else ""
        print(f"  - {module.name}: {module.description}{suffix}")
    print()
    return 0


def run_single(args: argparse.Namespace, registry: DiagnosticRegistry, settings: SettingsManager) -> int:
    module = registry.require(args.command)
    config = build_module_config(
        settings,
        module.name,
        extra_args_from(args, module.name),
        verbose=args.verbose or None,
        watch=getattr(args, "watch", False) or None,
        interval=getattr(args, "interval", None),
        top_n=args.top,
        json_output=args.json or None,
    )
    warn_missing_permissions(module)
    color = use_color(args, settings)

    if config.watch:
        return watch_single(module, config, args, color)

    try:
        report = run_module(module, config)
    except DiagnosticError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        write_report_json(sys.stdout, report)
    elif args.quiet:
        print(report)
    else:
        write_report(sys.stdout, report, color)
    return 0


def watch_single(module: BaseDiagnostic, config: ModuleConfig, args: argparse.Namespace, color: bool) -> int:
    try:
        for outcome in watch_module(module, config):
            if outcome.error is not None:
                print(f"Error: {outcome.error}", file=sys.stderr)
                if isinstance(outcome.error, ModuleUnavailableError):
                    return 1
                continue
            if args.json:
                write_report_json(sys.stdout, outcome.report)
            else:
                if color:
                    sys.stdout.write(CLEAR_SCREEN)
                write_report(sys.stdout, outcome.report, color)
            sys.stdout.flush()
    except KeyboardInterrupt:
        return 130
    return 0


def run_all(args: argparse.Namespace, registry: DiagnosticRegistry, settings: SettingsManager) -> int:
    output_format = args.format or ("json" if args.json else settings.get("output.format", "terminal"))
    if output_format not in OUTPUT_FORMATS:
        logger.warning(f"Unknown output format {output_format!r}, using terminal")
        output_format = "terminal"

    shared = dict(verbose=args.verbose or None, top_n=args.top, json_output=(output_format == "json") or None)
    module_configs = {m.name: build_module_config(settings, m.name, **shared) for m in registry}
    for module in registry:
        if not args.quick or module.is_quick:
            warn_missing_permissions(module)

    runner = DiagnosticRunner(registry)
    runner.set_progress_callback(_log_progress)
    outcomes = runner.run_all(quick_mode=args.quick, module_configs=module_configs)
    reporter = DiagnosticReporter.from_outcomes(outcomes)

    if args.output:
        fmt = {"terminal": "txt", "markdown": "md"}.get(output_format, output_format)
        if args.format is None and not args.json:
            fmt = "auto"
        path = reporter.save(args.output, format=fmt)
        if not args.quiet:
            print(f"Report saved to: {path}")
        return 0

    if args.quiet:
        for report in reporter.reports:
            print(report)
    elif output_format == "json":
        write_reports_json(sys.stdout, reporter.reports)
    elif output_format == "markdown":
        print(reporter.to_markdown())
    elif output_format == "html":
        print(reporter.to_html())
    else:
        write_reports(sys.stdout, reporter.reports, use_color(args, settings))
    return 0


def _log_progress(outcome: ModuleOutcome) -> None:
    status = outcome.report.overall_severity.label if outcome.report else "ERROR"
    logger.info(f"{outcome.module}: {status} ({outcome.duration_ms:.0f}ms)")


def main(argv: Optional[List[str]] = None) -> int:
    registry = build_registry()
    parser = build_parser(registry)
    args = parser.parse_args(argv)

    settings = SettingsManager(args.config)
    setup_logging(args, settings)

    if args.command is None:
        parser.print_help()
        return 1
    if args.command == "list":
        return list_modules(registry)
    if args.command == "all":
        return run_all(args, registry, settings)
    return run_single(args, registry, settings)


if __name__ == "__main__":
    sys.exit(main())
