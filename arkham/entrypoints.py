"""
arkham/entrypoints.py - Command line entry point

Offline tooling over scenario files:

    arkham validate scenario.json
    arkham export scenario.json --format markdown -o script.md
    arkham summary scenario.json --json
    arkham check scenario.json --rule "No debug flag" 'not has_variable("debug")'
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import argparse
import json
import logging
import sys

from arkham.config import load_config
from arkham.core.enums import ExportFormat, GameCategory, RuleSeverity
from arkham.errors import ArkhamError, ScenarioValidationError
from arkham.export import generate_scenario_text
from arkham.persistence import read_document
from arkham.store import GraphStore
from arkham.validators import AssertionEngine, validate_scenario_data

logger = logging.getLogger("arkham.entrypoints")

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps({
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        })


def setup_logging(level: str = "INFO", log_file: str = None, json_format: bool = False) -> None:
    """
    Configure application logging.

    Console output goes to stderr so command output on stdout stays clean.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JSONFormatter() if json_format else logging.Formatter(_LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


# ==================== Commands ====================

def _load_store(filepath: str, config_path: Optional[str]) -> GraphStore:
    store = GraphStore(config=load_config(config_path))
    store.load_file(filepath)
    store.tasks.run_pending()
    return store


def cmd_validate(parsed: argparse.Namespace) -> int:
    result = validate_scenario_data(read_document(parsed.file))
    if parsed.json:
        report = result.to_dict()
        report.pop("correctedData", None)
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        print(f"{parsed.file}: {'valid' if result.is_valid else 'INVALID'}")
        for error in result.errors:
            print(f"  error: {error}")
        for warning in result.warnings:
            print(f"  warning: {warning}")
        for correction in result.corrections:
            print(f"  corrected: {correction}")
    return 0 if result.is_valid else 1


def cmd_export(parsed: argparse.Namespace) -> int:
    store = _load_store(parsed.file, parsed.config)
    text = generate_scenario_text(store.nodes, store.edges, store.variables, parsed.format)
    if parsed.output:
        with open(parsed.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"Wrote {parsed.format} export to {parsed.output}")
    else:
        print(text)
    return 0


def _summary(store: GraphStore) -> Dict[str, Any]:
    by_type: Dict[str, int] = {}
    for node in store.nodes:
        by_type[node.type.value] = by_type.get(node.type.value, 0) + 1
    game_state = store.game_state
    return {
        "nodes": len(store.nodes),
        "edges": len([e for e in store.edges if not e.virtual]),
        "nodes_by_type": by_type,
        "variables": {name: v.to_dict() for name, v in store.variables.items()},
        "characters": len(store.characters),
        "resources": len(store.resources),
        "game_state": {c.value: dict(game_state.category(c)) for c in GameCategory},
    }


def cmd_summary(parsed: argparse.Namespace) -> int:
    summary = _summary(_load_store(parsed.file, parsed.config))
    if parsed.json:
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        return 0

    print(f"Nodes: {summary['nodes']}")
    for node_type, count in sorted(summary["nodes_by_type"].items()):
        print(f"  {node_type}: {count}")
    print(f"Edges: {summary['edges']}")
    print(f"Characters: {summary['characters']}  Resources: {summary['resources']}")
    print("Variables:")
    for name, variable in summary["variables"].items():
        print(f"  {name} ({variable['type']}) = {variable['value']!r}")
    for category, totals in summary["game_state"].items():
        if totals:
            print(f"{category.capitalize()}:")
            for name, quantity in totals.items():
                print(f"  {name}: {quantity}")
    return 0


def cmd_check(parsed: argparse.Namespace) -> int:
    store = _load_store(parsed.file, parsed.config)
    engine = AssertionEngine(include_builtin=not parsed.no_builtin)
    for name, source in parsed.rule or []:
        engine.add_rule(name, source, severity=parsed.rule_severity)

    results = engine.run(store)
    if parsed.json:
        print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
    else:
        for result in results:
            status = "PASS" if result.passed else result.severity.value.upper()
            print(f"[{status}] {result.name}: {result.message}")

    failed_errors = [r for r in results if not r.passed and r.severity == RuleSeverity.ERROR]
    return 1 if failed_errors else 0


# ==================== Parser ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ARKHAM scenario graph tools",
        prog="arkham",
    )
    parser.add_argument("-c", "--config", help="Path to configuration file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (defaults to the configured level)",
    )
    parser.add_argument("--log-file", help="Log file path", default=None)
    parser.add_argument("--json", action="store_true", help="Output in JSON format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Run the document sanitizer")
    validate.add_argument("file")
    validate.set_defaults(handler=cmd_validate)

    export = subparsers.add_parser("export", help="Write the scenario flow as text")
    export.add_argument("file")
    export.add_argument(
        "--format",
        choices=[f.value for f in ExportFormat],
        default=ExportFormat.TEXT.value,
    )
    export.add_argument("-o", "--output", default=None, help="Output file (stdout if omitted)")
    export.set_defaults(handler=cmd_export)

    summary = subparsers.add_parser("summary", help="Counts and derived game state")
    summary.add_argument("file")
    summary.set_defaults(handler=cmd_summary)

    check = subparsers.add_parser("check", help="Run assertion rules")
    check.add_argument("file")
    check.add_argument(
        "--rule",
        nargs=2,
        action="append",
        metavar=("NAME", "EXPRESSION"),
        help="Add a custom rule (repeatable)",
    )
    check.add_argument(
        "--rule-severity",
        choices=[s.value for s in RuleSeverity],
        default=RuleSeverity.WARNING.value,
    )
    check.add_argument("--no-builtin", action="store_true", help="Skip the built-in rules")
    check.set_defaults(handler=cmd_check)

    return parser


def cli_main(args: List[str] = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parsed = build_parser().parse_args(args)

    config = load_config(parsed.config)
    log_level = "DEBUG" if parsed.verbose else (parsed.log_level or config.logging.level)
    setup_logging(
        level=log_level,
        log_file=parsed.log_file or config.logging.log_file,
        json_format=config.logging.json_logs,
    )

    try:
        return parsed.handler(parsed)
    except ScenarioValidationError as e:
        print(f"{parsed.file}: INVALID", file=sys.stderr)
        for error in e.errors:
            print(f"  error: {error}", file=sys.stderr)
        return 1
    except ArkhamError as e:
        logger.error(str(e))
        return 2
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read {parsed.file}: {e}")
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


def main() -> None:
    sys.exit(cli_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
