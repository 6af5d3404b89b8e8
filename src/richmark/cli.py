#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Command-line interface for richmark.

The CLI loads Markdown into an editing session and reports on it, which makes
the import/export rules easy to inspect from a shell.

Examples
--------
Normalize a file through import and export::

    $ richmark format notes.md --out notes.normalized.md

List the headings::

    $ richmark outline notes.md

Check that a file survives a round trip unchanged::

    $ richmark check notes.md

Show the document tree with rich formatting::

    $ richmark --rich tree notes.md

"""

import argparse
import difflib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from richmark import __version__
from richmark.config import discover_config_file, load_config_file, options_from_config
from richmark.editor import Editor
from richmark.exceptions import ConfigError, RichMarkError
from richmark.logging_utils import configure_logging
from richmark.model.serialization import node_to_dict
from richmark.options import EditorOptions
from richmark.projections import heading_outline, visible_character_count

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 3
EXIT_FILE_ERROR = 4
EXIT_UNSTABLE = 5


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with every subcommand."""
    parser = argparse.ArgumentParser(
        prog="richmark",
        description="Inspect and normalize Markdown through the richmark document model.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Also write log messages to this file")
    parser.add_argument("--trace", action="store_true", help="Verbose logging with timestamps and logger names")
    parser.add_argument("--config", help="Configuration file (default: discovered from the working directory)")
    parser.add_argument("--rich", action="store_true", help="Format output with rich")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    format_parser = subparsers.add_parser("format", help="Normalize Markdown through import and export")
    format_parser.add_argument("input", help="Markdown file, or '-' for stdin")
    format_parser.add_argument("--out", "-o", help="Write to this file instead of stdout")

    outline_parser = subparsers.add_parser("outline", help="List the headings of a document")
    outline_parser.add_argument("input", help="Markdown file, or '-' for stdin")

    count_parser = subparsers.add_parser("count", help="Count visible characters")
    count_parser.add_argument("input", help="Markdown file, or '-' for stdin")

    tree_parser = subparsers.add_parser("tree", help="Print the document tree")
    tree_parser.add_argument("input", help="Markdown file, or '-' for stdin")
    tree_parser.add_argument("--keys", action="store_true", help="Include node keys")

    check_parser = subparsers.add_parser("check", help="Verify that export is stable across a round trip")
    check_parser.add_argument("input", help="Markdown file, or '-' for stdin")

    return parser


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _load_options(args: argparse.Namespace) -> EditorOptions:
    config_path = Path(args.config) if args.config else discover_config_file()
    if config_path is None:
        return EditorOptions()
    logger.info(f"Using configuration {config_path}")
    return options_from_config(load_config_file(config_path))


def _print_markdown(markdown: str, use_rich: bool) -> None:
    if not use_rich:
        print(markdown)
        return
    from rich.console import Console
    from rich.markdown import Markdown

    Console().print(Markdown(markdown))


def _add_rich_branch(branch: Any, data: dict[str, Any]) -> None:
    label = data["type"]
    details = {name: value for name, value in data.items() if name not in ("type", "children") and value}
    if details:
        label += " " + " ".join(f"{name}={value!r}" for name, value in details.items())
    child = branch.add(label)
    for child_data in data.get("children", []):
        _add_rich_branch(child, child_data)


def cmd_format(editor: Editor, args: argparse.Namespace) -> int:
    """Write the exported Markdown of the document."""
    markdown = editor.to_markdown()
    if args.out:
        Path(args.out).write_text(markdown + "\n", encoding="utf-8")
        logger.info(f"Wrote {args.out}")
    else:
        _print_markdown(markdown, args.rich)
    return EXIT_SUCCESS


def cmd_outline(editor: Editor, args: argparse.Namespace) -> int:
    """Print one indented line per heading."""
    outline = heading_outline(editor.state)
    if args.rich:
        from rich.console import Console
        from rich.table import Table

        table = Table(title="Outline")
        table.add_column("Level", justify="right")
        table.add_column("Heading")
        for entry in outline:
            table.add_row(str(entry.level), entry.text)
        Console().print(table)
    else:
        for entry in outline:
            print(f"{'  ' * (entry.level - 1)}{entry.text}")
    return EXIT_SUCCESS


def cmd_count(editor: Editor, args: argparse.Namespace) -> int:
    """Print the visible character count."""
    print(visible_character_count(editor.state))
    return EXIT_SUCCESS


def cmd_tree(editor: Editor, args: argparse.Namespace) -> int:
    """Print the node tree as JSON, or as a rich tree."""
    data = node_to_dict(editor.state, include_keys=args.keys)
    if args.rich:
        from rich.console import Console
        from rich.tree import Tree

        tree = Tree(data["type"])
        for child in data.get("children", []):
            _add_rich_branch(tree, child)
        Console().print(tree)
    else:
        print(json.dumps(data, indent=2))
    return EXIT_SUCCESS


def cmd_check(editor: Editor, args: argparse.Namespace) -> int:
    """Export, re-import and export again; report any difference."""
    first = editor.to_markdown()
    second = Editor(editor.options, markdown=first).to_markdown()
    if first == second:
        print("stable")
        return EXIT_SUCCESS

    diff = difflib.unified_diff(
        first.splitlines(), second.splitlines(), fromfile="export", tofile="re-export", lineterm=""
    )
    print("\n".join(diff))
    return EXIT_UNSTABLE


COMMANDS = {
    "format": cmd_format,
    "outline": cmd_outline,
    "count": cmd_count,
    "tree": cmd_tree,
    "check": cmd_check,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, log_file=args.log_file, trace_mode=args.trace, use_rich=args.rich)

    try:
        options = _load_options(args)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    try:
        markdown = _read_input(args.input)
    except OSError as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return EXIT_FILE_ERROR

    try:
        editor = Editor(options, markdown=markdown)
        return COMMANDS[args.command](editor, args)
    except RichMarkError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
