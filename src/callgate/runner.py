"""
callgate - Main runner and CLI.

Loads the rule configuration, parses every Elm module under the root and
reports uses of forbidden functions outside their allowed modules.

Usage:
    python -m callgate [root]
    python -m callgate --config callgate.yaml --json
    python -m callgate --files src/Main.elm src/Page/Home.elm
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import ConfigError, LintConfig, find_config_file, load_rule_config
from .lookup import check_module_with_lookup
from .reporting import Finding, Reporter
from .rules import ForbiddenFunctionRule
from .scanner import SourceFile, load_sources
from .syntax import LexerError, ParseError, Parser, Lexer


logger = logging.getLogger(__name__)


def _relpath_str(root: Path, p: Path) -> str:
    """Get relative path as posix string."""
    try:
        return p.relative_to(root).as_posix()
    except ValueError:
        return p.as_posix()


def check_source(cfg: LintConfig, src: SourceFile) -> list[Finding]:
    """Parse and check one source file."""
    rel = _relpath_str(cfg.root, src.path)

    try:
        tokens = Lexer(src.text, str(src.path)).tokenize_all()
        module = Parser(tokens, str(src.path)).parse()
    except (LexerError, ParseError) as e:
        logger.warning("Could not parse %s: %s", rel, e)
        return [Finding(
            rule_id="PARSE_ERROR",
            severity="ERROR",
            path=rel,
            line=e.line,
            col=e.column,
            message=str(e),
        )]

    rule = ForbiddenFunctionRule(cfg.rules)
    if cfg.use_lookup_table:
        diagnostics = check_module_with_lookup(cfg.rules, module)
    else:
        diagnostics = rule.check(module)

    return [
        Finding.from_diagnostic(rel, d, rule_id=rule.rule_id, severity=rule.severity, symbol=module.dotted_name)
        for d in diagnostics
    ]


def run(cfg: LintConfig) -> Reporter:
    """Run the rule over every source file and return a Reporter with findings."""
    reporter = Reporter()
    sources = load_sources(cfg)
    logger.info("Checking %d file(s) against %d binding(s)", len(sources), len(cfg.rules.bindings))

    for src in sources:
        for finding in check_source(cfg, src):
            reporter.add(finding)

    return reporter


def _resolve_explicit_files(args: argparse.Namespace) -> Optional[tuple[Path, ...]]:
    if args.files:
        return tuple(Path(f).resolve() for f in args.files)
    if args.files_from:
        manifest_path = Path(args.files_from)
        manifest_data = json.loads(manifest_path.read_text(encoding="utf-8"))
        if isinstance(manifest_data, dict):
            manifest_data = manifest_data.get("files", [])
        return tuple(Path(f).resolve() for f in manifest_data)
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callgate",
        description=f"callgate v{__version__} - flag forbidden functions used outside their allowed modules",
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Root directory to scan (default: current directory)",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Rule configuration file (default: $CALLGATE_CONFIG or callgate.yaml under root)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "--files",
        nargs="*",
        metavar="FILE",
        help="Check only these specific files (disables directory scan)",
    )
    parser.add_argument(
        "--files-from",
        metavar="MANIFEST",
        help="Read file list from JSON manifest (array of paths)",
    )
    parser.add_argument(
        "--lookup-table",
        action="store_true",
        help="Resolve references through a precomputed module-name lookup table",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    root = Path(args.root).resolve()

    try:
        config_path = find_config_file(root, Path(args.config) if args.config else None)
        if config_path is None:
            raise ConfigError(f"No configuration found under {root}")
        rules = load_rule_config(config_path)
        explicit_files = _resolve_explicit_files(args)
    except (ConfigError, OSError, ValueError) as e:
        print(f"callgate: configuration error: {e}", file=sys.stderr)
        return 2

    cfg = LintConfig(
        root=root,
        explicit_files=explicit_files,
        use_lookup_table=args.lookup_table,
        json_output=args.json,
        rules=rules,
    )

    reporter = run(cfg)

    if cfg.json_output:
        print(reporter.render_json())
    else:
        print(reporter.render_human())

    return 1 if reporter.findings else 0
