"""TORP CLI - score a construction quote from the command line.

Usage:
    torp score --input request.json [--profile B2B] [--no-ml]
    torp score --input request.yaml [--no-timestamp] [--audit-log PATH]
    torp axes

The request document holds three keys: quote, enrichment (optional) and
context. JSON and YAML are both accepted; stdin is read when --input is
omitted.

Exit codes:
    0: Success
    1: Internal error (unexpected)
    2: Invalid input, context or configuration
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from torp.audit.sink import get_audit_sink
from torp.engine import ScoringEngine, ScoringEngineError
from torp.ml.heuristic import HeuristicMLProvider
from torp.ml.http_provider import HttpMLProvider
from torp.ml.provider import MLProvider
from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axis_configs import SCORING_VERSION, list_axis_configs
from torp.scoring.config import ScoringConfig, ScoringConfigError, load_scoring_config
from torp.scoring.context import ScoringContextError
from torp.scoring.models import Profile

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class InputError(Exception):
    """Raised when the request document cannot be read or parsed."""


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False))


def _make_error(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _load_request(input_path: str | None) -> dict[str, Any]:
    """Load the request document from a file or stdin.

    Files ending in .yaml/.yml are parsed as YAML, other files as JSON.
    Stdin is parsed as YAML, which also accepts JSON.

    Raises:
        InputError: If the document is missing, empty, unparsable or not a mapping.
    """
    try:
        if input_path:
            content = Path(input_path).read_text(encoding="utf-8")
        else:
            content = sys.stdin.read()
    except FileNotFoundError as e:
        raise InputError(f"File not found: {input_path}") from e
    except OSError as e:
        raise InputError(f"Cannot read input: {e}") from e

    if not content.strip():
        raise InputError("Empty input")

    use_json = input_path is not None and Path(input_path).suffix.lower() not in _YAML_SUFFIXES
    try:
        data = json.loads(content) if use_json else yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON: {e}") from e
    except yaml.YAMLError as e:
        raise InputError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise InputError("Request must be a mapping with 'quote' and 'context' keys")
    for key in ("quote", "context"):
        if key not in data:
            raise InputError(f"Request is missing '{key}'")
    return data


def _build_ml_provider(config: ScoringConfig) -> MLProvider:
    if config.ml_endpoint_url:
        return HttpMLProvider(config.ml_endpoint_url, timeout_seconds=config.ml_timeout_seconds)
    return HeuristicMLProvider()


def cmd_score(args: argparse.Namespace) -> int:
    """Execute the score command.

    Exit codes:
        0: Report printed
        2: Invalid input, context or configuration
    """
    try:
        request = _load_request(args.input)
    except InputError as e:
        _output_json(_make_error("INVALID_INPUT", str(e)))
        return 2

    try:
        quote = Quote.model_validate(request["quote"])
        enrichment = EnrichmentBundle.model_validate(request.get("enrichment") or {})
    except ValidationError as e:
        _output_json(_make_error("INVALID_INPUT", str(e)))
        return 2

    context = request["context"]
    if args.profile is not None:
        if not isinstance(context, dict):
            _output_json(_make_error("INVALID_CONTEXT", "Scoring context must be a mapping"))
            return 2
        context = {**context, "profile": args.profile}

    try:
        config = load_scoring_config()
    except ScoringConfigError as e:
        _output_json(_make_error("INVALID_CONFIG", str(e)))
        return 2

    engine = ScoringEngine(
        ml_provider=None if args.no_ml else _build_ml_provider(config),
        audit_sink=get_audit_sink(args.audit_log),
        config=config,
    )
    try:
        report = engine.calculate_score(quote, enrichment, context)
    except ScoringContextError as e:
        _output_json(_make_error("INVALID_CONTEXT", str(e)))
        return 2

    _output_json(report.to_json_dict(include_timestamp=not args.no_timestamp))
    return 0


def cmd_axes(args: argparse.Namespace) -> int:
    """Print the axis budgets and profile weights of the scheme."""
    _output_json(
        {
            "version": SCORING_VERSION,
            "axes": [cfg.model_dump(mode="json") for cfg in list_axis_configs()],
        }
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="torp",
        description="TORP - multi-axis scoring of construction quotes",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    score_parser = subparsers.add_parser(
        "score",
        help="Score a quote and print the report as JSON",
    )
    score_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to a JSON or YAML request (reads from stdin if omitted)",
    )
    score_parser.add_argument(
        "--profile",
        choices=[p.value for p in Profile],
        default=None,
        help="Override the caller profile of the request context",
    )
    score_parser.add_argument(
        "--no-ml",
        action="store_true",
        default=False,
        help="Skip the ML adjustment",
    )
    score_parser.add_argument(
        "--no-timestamp",
        action="store_true",
        default=False,
        help="Omit metadata.evaluated_at for byte-comparable output",
    )
    score_parser.add_argument(
        "--audit-log",
        metavar="PATH",
        default=None,
        help="Append scoring audit events to this JSONL file (default: $TORP_AUDIT_LOG_PATH)",
    )

    subparsers.add_parser(
        "axes",
        help="Show axis budgets and profile weights",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Invalid input, context or configuration
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        if args.command == "score":
            return cmd_score(args)

        if args.command == "axes":
            return cmd_axes(args)

        return 0

    except ScoringEngineError as e:
        _output_json(_make_error("SCORING_FAILED", str(e)))
        return 1
    except Exception as e:
        _output_json(_make_error("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
