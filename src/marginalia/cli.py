"""Command-line front end for stored highlights.

Usage:
    marginalia <command> [options]

Commands:
    show <file>                 Render, restore highlights, print a summary
    add <file> <start> <end>    Highlight [start, end) of the flattened text
    list <file>                 List stored highlights
    remove <file> <id>          Delete a highlight
    export <file> <out>         Write a bundle (or .html page) with highlights
    import <bundle>             Replace stored highlights from a bundle
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from marginalia import setup_logging
from marginalia.annotations import (
    AnnotationContext,
    CaptureError,
    capture,
    delete,
    flatten,
    get_all,
    import_all,
    locate,
)
from marginalia.config import get_settings
from marginalia.document.html import to_html
from marginalia.document.identity import document_key
from marginalia.export import (
    BundleError,
    build_bundle,
    export_html,
    read_bundle,
    write_bundle,
)
from marginalia.reader import open_document
from marginalia.store import open_store

if TYPE_CHECKING:
    from marginalia.annotations import Annotation
    from marginalia.reader import OpenedDocument

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for marginalia subcommands."""
    parser = argparse.ArgumentParser(
        prog="marginalia",
        description="Capture and restore highlights on text and markdown files.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # show
    show_p = sub.add_parser("show", help="Render a file and restore its highlights")
    show_p.add_argument("file", type=Path, help="Text or markdown file")
    show_p.add_argument(
        "--html", action="store_true", help="Print the highlighted HTML"
    )

    # add
    add_p = sub.add_parser("add", help="Highlight a span of the flattened text")
    add_p.add_argument("file", type=Path, help="Text or markdown file")
    add_p.add_argument("start", type=int, help="Start offset (inclusive)")
    add_p.add_argument("end", type=int, help="End offset (exclusive)")
    add_p.add_argument("--color", default=None, help="Highlight color")

    # list
    list_p = sub.add_parser("list", help="List stored highlights")
    list_p.add_argument("file", type=Path, help="Text or markdown file")

    # remove
    remove_p = sub.add_parser("remove", help="Delete a highlight")
    remove_p.add_argument("file", type=Path, help="Text or markdown file")
    remove_p.add_argument("id", help="Highlight id")

    # export
    export_p = sub.add_parser("export", help="Write a bundle with highlights")
    export_p.add_argument("file", type=Path, help="Text or markdown file")
    export_p.add_argument("out", type=Path, help="Bundle path to write")

    # import
    import_p = sub.add_parser("import", help="Load highlights from a bundle")
    import_p.add_argument("bundle", type=Path, help="Bundle path")

    return parser


def _make_context() -> AnnotationContext:
    settings = get_settings()
    return AnnotationContext.from_settings(open_store(settings), settings)


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[red]Error:[/] cannot read {path}: {exc.strerror}")
        sys.exit(1)


def _open(ctx: AnnotationContext, path: Path) -> OpenedDocument:
    settings = get_settings()
    return asyncio.run(
        open_document(
            ctx,
            path.name,
            _read(path),
            wrap_mode=settings.render.wrap_mode,
            markdown_extensions=settings.render.markdown_extensions,
        )
    )


def _format_timestamp(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M")


def _cmd_show(path: Path, *, show_html: bool = False) -> None:
    """Render and restore, then print the restoration summary."""
    ctx = _make_context()
    opened = _open(ctx, path)
    report = opened.report

    summary = Text()
    summary.append(f"{path.name}", style="bold")
    summary.append(f"  ({opened.rendered.mode})\n", style="dim")
    summary.append(f"Restored: {report.success_count}", style="green")
    if report.fail_count:
        summary.append(f"  Failed: {report.fail_count}", style="red")
    if report.malformed_count:
        summary.append(f"  Malformed: {report.malformed_count}", style="yellow")
    console.print(Panel(summary, title="Highlights"))

    for failure in report.failures:
        console.print(
            f"  [red]{failure.annotation_id}[/] {failure.reason}: {failure.detail}"
        )

    if show_html:
        from rich.syntax import Syntax

        console.print(Syntax(to_html(opened.rendered.root), "html", word_wrap=True))


def _cmd_add(path: Path, start: int, end: int, *, color: str | None) -> None:
    """Capture [start, end) of the flattened text."""
    ctx = _make_context()
    opened = _open(ctx, path)
    root = opened.rendered.root

    start_pos = locate(root, start)
    end_pos = locate(root, end, prefer_end=True)
    if start_pos is None or end_pos is None:
        length = len(flatten(root))
        console.print(
            f"[red]Error:[/] offsets [{start}, {end}) outside text of length {length}"
        )
        sys.exit(1)

    try:
        annotation = capture(ctx, start_pos, end_pos, color)
    except CaptureError as exc:
        console.print(f"[red]Cannot highlight:[/] {exc}")
        sys.exit(1)
    preview = escape(repr(annotation.preview))
    console.print(f"[green]Highlighted[/] {preview} (id={annotation.id})")


def _print_annotations(annotations: list[Annotation], title: str) -> None:
    from rich.table import Table

    if not annotations:
        console.print("[yellow]No highlights stored.[/]")
        return

    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Range")
    table.add_column("Color")
    table.add_column("Preview")
    table.add_column("Created")
    for a in annotations:
        table.add_row(
            a.id,
            f"[{a.start_index}, {a.end_index})",
            f"[on {a.color}] [/] {a.color}" if a.color.startswith("#") else a.color,
            escape(a.preview),
            _format_timestamp(a.timestamp),
        )
    console.print(table)


def _cmd_list(path: Path) -> None:
    """List stored highlights for a file."""
    ctx = _make_context()
    key = document_key(path.name, _read(path))
    _print_annotations(get_all(ctx, key), f"Highlights: {path.name}")


def _cmd_remove(path: Path, annotation_id: str) -> None:
    """Delete one highlight."""
    ctx = _make_context()
    _open(ctx, path)
    if delete(ctx, annotation_id):
        console.print(f"[green]Removed[/] highlight {annotation_id}")
    else:
        console.print(f"[yellow]No highlight[/] {annotation_id} on {path.name}")
        sys.exit(1)


def _cmd_export(path: Path, out: Path) -> None:
    """Write a bundle with the file content and its highlights.

    An ``.html`` target gets the highlighted page instead of a bundle.
    """
    ctx = _make_context()
    if out.suffix.lower() in (".html", ".htm"):
        opened = _open(ctx, path)
        out.write_text(export_html(opened.rendered.root, path.name), "utf-8")
        console.print(
            f"[green]Exported[/] {opened.report.success_count} highlight(s) to {out}"
        )
        return

    content = _read(path)
    key = document_key(path.name, content)
    annotations = get_all(ctx, key)
    write_bundle(out, build_bundle(path.name, content, annotations, key=key))
    console.print(f"[green]Exported[/] {len(annotations)} highlight(s) to {out}")


def _cmd_import(path: Path) -> None:
    """Replace stored highlights with those carried by a bundle."""
    ctx = _make_context()
    try:
        bundle = read_bundle(_read(path))
    except BundleError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    annotations = bundle.valid_annotations()
    import_all(ctx, bundle.document_key, annotations)
    console.print(
        f"[green]Imported[/] {len(annotations)} highlight(s) for {bundle.name}"
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``marginalia`` command."""
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    setup_logging()

    match args.command:
        case "show":
            _cmd_show(args.file, show_html=args.html)
        case "add":
            _cmd_add(args.file, args.start, args.end, color=args.color)
        case "list":
            _cmd_list(args.file)
        case "remove":
            _cmd_remove(args.file, args.id)
        case "export":
            _cmd_export(args.file, args.out)
        case "import":
            _cmd_import(args.bundle)
