#!/usr/bin/env python3
"""
scorebridge CLI - Score messages with a script running in a micromamba environment

Usage:
    scorebridge check "message to score" --script score.py
    scorebridge check "message" --script score.py --package langchain --trusted-host

    scorebridge validate "message"

    scorebridge env status
    scorebridge env create --package langchain

    scorebridge rejections stats
"""

import argparse
import json
import logging
import sys

from . import __version__

EXIT_OK = 0
EXIT_NO_RESULT = 1
EXIT_ERROR = 2


def configure_logging(verbose: bool = False) -> None:
    """Send log output to stderr so stdout only carries results."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True
    )


def _settings_from_args(args):
    from .config import load_settings
    from dataclasses import replace

    settings = load_settings(getattr(args, "config", None))
    overrides = {
        "python_version": getattr(args, "python_version", None),
        "env_name": getattr(args, "env_name", None),
        "root_prefix": getattr(args, "root_prefix", None),
        "script_path": getattr(args, "script", None),
        "timeout": getattr(args, "timeout", None),
    }
    if getattr(args, "package", None):
        overrides["packages"] = args.package
    if getattr(args, "trusted_host", False):
        overrides["trusted_host"] = True
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def _log_rejection(args, error, message):
    if getattr(args, "no_log", False):
        return
    from .rejection_log import RejectionLogger
    entry = RejectionLogger().log(error, message)
    print(f"   📝 Logged as {entry.short_hash}", file=sys.stderr)


def cmd_check(args):
    """Validate, provision and score a message."""
    from .errors import ConfigError, ProvisioningError, ValidationError
    from .orchestrator import FAILURE_MESSAGE, run_threat_check

    try:
        settings = _settings_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    if not settings.script_path:
        print("Error: No scoring script. Use --script or set SCOREBRIDGE_SCRIPT.", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    try:
        output = run_threat_check(args.message, settings=settings)
    except ValidationError as e:
        print(f"❌ Rejected: {e}", file=sys.stderr)
        _log_rejection(args, e, args.message)
        sys.exit(EXIT_ERROR)
    except ProvisioningError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    print(output)
    sys.exit(EXIT_NO_RESULT if output == FAILURE_MESSAGE else EXIT_OK)


def cmd_validate(args):
    """Check a message against the whitelist without running anything."""
    from .errors import ValidationError
    from .validator import validate_message

    try:
        validate_message(args.message)
    except ValidationError as e:
        if args.json:
            print(json.dumps({
                "valid": False,
                "reason": e.reason,
                "offending": getattr(e, "offending", []),
                "error": str(e)
            }, indent=2))
        else:
            print(f"❌ INVALID - {e}")
        _log_rejection(args, e, args.message)
        sys.exit(EXIT_ERROR)

    if args.json:
        print(json.dumps({"valid": True}, indent=2))
    else:
        print("✅ VALID")
    sys.exit(EXIT_OK)


def cmd_env(args):
    """Inspect or create the scoring environment."""
    from .environment import EnvironmentManager
    from .errors import ConfigError

    try:
        settings = _settings_from_args(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    manager = EnvironmentManager.from_settings(settings)

    if args.action == "status":
        exists = manager.exists(settings.env_name)
        if args.json:
            print(json.dumps({
                "env_name": settings.env_name,
                "root_prefix": settings.root_prefix,
                "exists": exists
            }, indent=2))
        else:
            mark = "✅" if exists else "⚪"
            state = "exists" if exists else "missing"
            print(f"{mark} '{settings.env_name}' {state} in {settings.root_prefix}")
        sys.exit(EXIT_OK if exists else EXIT_NO_RESULT)

    elif args.action == "create":
        if manager.exists(settings.env_name) and not args.force:
            print(f"Environment '{settings.env_name}' already exists.")
            sys.exit(EXIT_OK)

        result = manager.provision(
            settings.env_name,
            settings.python_version,
            packages=settings.packages,
            trusted_host=settings.trusted_host
        )

        if args.json:
            print(result.to_json())
        elif not result.created:
            print(f"❌ Failed to create '{result.env_name}': {result.error}")
        else:
            print(f"✅ Created '{result.env_name}' (python {result.python_version})")
            for pkg in result.packages:
                mark = "✅" if pkg.success else "❌"
                detail = f" ({pkg.error})" if pkg.error else ""
                print(f"   {mark} {pkg.package}{detail}")

        if not result.created:
            sys.exit(EXIT_ERROR)
        sys.exit(EXIT_OK if result.all_packages_installed else EXIT_NO_RESULT)


def cmd_rejections(args):
    """View and manage the rejection log."""
    from .rejection_log import RejectionLogger

    log = RejectionLogger()

    if args.action == "stats":
        stats = log.get_stats(days=args.days)
        if args.json:
            print(json.dumps(stats, indent=2))
        else:
            print(f"🛡️ scorebridge rejections")
            print(f"   Last {stats['days']} days | {stats['total']} messages rejected")
            if stats["total"] > 0:
                print(f"   Unique messages: {stats['unique_messages']}")
                print("\n   By Reason:")
                for reason, count in stats["by_reason"].items():
                    print(f"      • {reason}: {count}")
                print("\n   Top Characters:")
                for char, count in stats["top_characters"].items():
                    print(f"      {char!r}: {count}")

    elif args.action == "list":
        entries = list(log.get_entries(days=args.days, reason=args.reason))
        if args.json:
            print(json.dumps([e.to_dict() for e in entries], indent=2))
        elif not entries:
            print("No rejections logged in the specified time period.")
        else:
            print(f"🛡️ Rejection Log ({len(entries)} entries)")
            print("-" * 60)
            for entry in entries[:args.limit]:
                print(entry.summary())

    elif args.action == "clear":
        if not args.force:
            confirm = input("Clear all rejection logs? This cannot be undone. [y/N] ")
            if confirm.lower() != "y":
                print("Aborted.")
                return
        removed = log.clear()
        print(f"✅ Removed {removed} log file(s).")


def _add_env_options(parser):
    parser.add_argument("--python-version", help="Interpreter version for new environments (default: 3.11)")
    parser.add_argument("--env-name", "-e", help="Environment name (default: langchain)")
    parser.add_argument("--root-prefix", help="micromamba root prefix")
    parser.add_argument("--package", "-p", action="append",
                        help="Extra package to install after creation (repeatable)")
    parser.add_argument("--trusted-host", action="store_true",
                        help="Skip certificate verification for package installs")
    parser.add_argument("--timeout", type=float, help="Per-command timeout in seconds")
    parser.add_argument("--config", "-c", help="YAML config file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scorebridge",
        description="Score messages with a script in a managed micromamba environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  scorebridge check "Check this text for threats" --script score.py
  scorebridge check "hello" --script score.py --env-name scoring -p langchain
  scorebridge validate "rm -rf /; echo"
  scorebridge env status --json
        """
    )

    parser.add_argument("--version", action="version", version=f"scorebridge {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    check_parser = subparsers.add_parser("check", help="Score a message")
    check_parser.add_argument("message", help="Message to score")
    check_parser.add_argument("--script", "-s", help="Scoring script to run")
    _add_env_options(check_parser)
    check_parser.add_argument("--no-log", action="store_true", help="Don't log rejected messages")
    check_parser.set_defaults(func=cmd_check)

    validate_parser = subparsers.add_parser("validate", help="Validate a message (exit 0=valid, 2=invalid)")
    validate_parser.add_argument("message", help="Message to validate")
    validate_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    validate_parser.add_argument("--no-log", action="store_true", help="Don't log rejected messages")
    validate_parser.set_defaults(func=cmd_validate)

    env_parser = subparsers.add_parser("env", help="Inspect or create the scoring environment")
    env_parser.add_argument("action", nargs="?", default="status", choices=["status", "create"],
                            help="Action: status (default), create")
    _add_env_options(env_parser)
    env_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    env_parser.add_argument("--force", "-f", action="store_true",
                            help="Create even if the environment already exists")
    env_parser.set_defaults(func=cmd_env)

    rejections_parser = subparsers.add_parser("rejections", help="View the rejection log")
    rejections_parser.add_argument("action", nargs="?", default="stats", choices=["stats", "list", "clear"],
                                   help="Action: stats (default), list, clear")
    rejections_parser.add_argument("--days", "-d", type=int, default=7,
                                   help="Number of days to include (default: 7)")
    rejections_parser.add_argument("--reason", "-r", choices=["empty", "invalid_characters", "invalid"],
                                   help="Filter by rejection reason")
    rejections_parser.add_argument("--limit", "-l", type=int, default=50,
                                   help="Max entries to show (default: 50)")
    rejections_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    rejections_parser.add_argument("--force", "-f", action="store_true",
                                   help="Skip confirmation for destructive actions")
    rejections_parser.set_defaults(func=cmd_rejections)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
