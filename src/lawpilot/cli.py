"""
LawPilot CLI

Command-line interface for running the pipeline and inspecting artifacts.

Usage:
    lawpilot run intake.json --grant "MCSAP enforcement grant" --store artifacts.json
    lawpilot show validity --store artifacts.json
    lawpilot check-condition 'tier1_status == "ultra_vires"' --context tier1_status=ultra_vires

Exit codes:
    0  success
    1  the validity stage did not run (or the requested artifact is absent)
    2  usage or input error
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from . import __version__
from .canon import pretty_json
from .config import Settings, configure_logging
from .engine import (
    DOCTRINE_CONTEXT_KEYS,
    VALIDITY_CONTEXT_KEYS,
    ConditionEvaluator,
    Pipeline,
)
from .exceptions import ConditionError, LawPilotError
from .models import SEVERITY_ORDER, StageKey, ValidityResult
from .store import ArtifactStore, JsonFileStore


EXIT_OK = 0
EXIT_INCOMPLETE = 1
EXIT_INPUT_ERROR = 2


def _error(message: str) -> None:
    print(f"error: {message}", file=sys.stderr)


def _make_store(path: Optional[str]) -> ArtifactStore:
    return JsonFileStore(path) if path else ArtifactStore()


def load_intake_file(path: str) -> Any:
    """Read an intake document (JSON or YAML)."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_context_value(raw: str) -> Any:
    """Numbers become int/float; anything else stays a string."""
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_context(pairs: list[str]) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        context[key.strip()] = parse_context_value(value.strip())
    return context


def print_validity(result: ValidityResult) -> None:
    """Print the human-readable validity summary."""
    validity = result.validity
    print("=" * 70)
    print(f"VALIDITY: {validity.status.value.upper()}")
    print("=" * 70)
    print()
    print(result.summary.user_friendly)
    print()
    print("RECOMMENDED ACTIONS")
    print("-" * 70)
    for i, action in enumerate(validity.recommended_actions, start=1):
        print(f"  {i}. {action}")
    if validity.notes:
        print()
        print(f"Notes: {validity.notes}")


# =============================================================================
# Commands
# =============================================================================

def cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Run the full pipeline for one intake."""
    try:
        intake = load_intake_file(args.intake)
        store = _make_store(settings.store_path)
        pipeline = Pipeline(store, settings=settings)
        report = pipeline.run(
            intake,
            grant_description=args.grant or "",
            severity=settings.default_severity,
        )
    except (OSError, yaml.YAMLError) as e:
        _error(f"cannot read intake {args.intake}: {e}")
        return EXIT_INPUT_ERROR
    except LawPilotError as e:
        _error(str(e))
        return EXIT_INPUT_ERROR

    if args.json:
        print(pretty_json({"artifacts": store.snapshot(), "report": report.to_dict()}))
    else:
        validity = store.read(StageKey.VALIDITY, ValidityResult)
        if validity is not None:
            print_validity(validity)
        for outcome in report.outcomes:
            if outcome.error is not None:
                print(f"[SKIPPED] {outcome.stage.value}: {outcome.error}", file=sys.stderr)

    return EXIT_OK if report.completed else EXIT_INCOMPLETE


def cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    """Print one stored artifact."""
    if not Path(args.store).is_file():
        _error(f"store file not found: {args.store}")
        return EXIT_INPUT_ERROR
    try:
        store = JsonFileStore(args.store)
    except LawPilotError as e:
        _error(str(e))
        return EXIT_INPUT_ERROR

    snapshot = store.snapshot()
    if args.key not in snapshot:
        _error(f"no '{args.key}' artifact in {args.store}")
        return EXIT_INCOMPLETE
    print(pretty_json(snapshot[args.key]))
    return EXIT_OK


def cmd_check_condition(args: argparse.Namespace, settings: Settings) -> int:
    """Evaluate one condition against a KEY=VALUE context."""
    keys = VALIDITY_CONTEXT_KEYS if args.validity else DOCTRINE_CONTEXT_KEYS
    try:
        context = parse_context(args.context or [])
        result = ConditionEvaluator(keys=keys).evaluate_strict(args.expression, context)
    except (ValueError, ConditionError) as e:
        _error(str(e))
        return EXIT_INPUT_ERROR
    print("true" if result else "false")
    return EXIT_OK


# =============================================================================
# Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LawPilot enforcement scenario audit",
        prog="lawpilot",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Log level (default: LP_LOG_LEVEL)")
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default=None,
        help="Log format (default: LP_LOG_FORMAT)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run every stage for an intake file")
    run_parser.add_argument("intake", help="Intake record (JSON or YAML)")
    run_parser.add_argument("--tables", default=None, help="Rule table directory")
    run_parser.add_argument("--store", default=None, help="JSON file to persist artifacts")
    run_parser.add_argument("--grant", default="", help="Free-text grant description")
    run_parser.add_argument(
        "--severity",
        choices=list(SEVERITY_ORDER),
        default=None,
        help="Severity for the authority analysis",
    )
    run_parser.add_argument("--json", action="store_true", help="Print every artifact as JSON")
    run_parser.set_defaults(func=cmd_run)

    # Show command
    show_parser = subparsers.add_parser("show", help="Print one stored artifact")
    show_parser.add_argument("key", choices=[k.value for k in StageKey], help="Artifact key")
    show_parser.add_argument("--store", required=True, help="JSON store file")
    show_parser.set_defaults(func=cmd_show)

    # Check-condition command
    check_parser = subparsers.add_parser(
        "check-condition", help="Evaluate a rule condition against a context"
    )
    check_parser.add_argument("expression", help="Condition expression")
    check_parser.add_argument(
        "--context",
        nargs="*",
        metavar="KEY=VALUE",
        help="Context values (numbers are parsed as numbers)",
    )
    check_parser.add_argument(
        "--validity",
        action="store_true",
        help="Allow the validity keys (divergence_score, fidelity_score)",
    )
    check_parser.set_defaults(func=cmd_check_condition)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_INPUT_ERROR

    try:
        settings = Settings.from_env().override(
            log_level=args.log_level,
            log_format=args.log_format,
            tables_dir=getattr(args, "tables", None),
            store_path=getattr(args, "store", None),
            default_severity=getattr(args, "severity", None),
        )
        configure_logging(settings.log_level, settings.log_format)
    except ValueError as e:
        _error(str(e))
        return EXIT_INPUT_ERROR

    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
