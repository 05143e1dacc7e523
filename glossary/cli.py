import argparse
import json
import sys
from pathlib import Path
from typing import List
import logging

if __package__ in {None, ""}:
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
    __package__ = "glossary"

from log_setup import configure_logging

from . import storage
from .document import SoupDocument
from .scanner import AnnotationScanner
from .term_index import TermIndexCache, build_term_index, entry_triggers


def annotate(args: argparse.Namespace) -> None:
    """Annotate an HTML page and write the result."""

    entries = storage.load_glossary(args.entries)
    store = storage.JsonTermIndexStore(args.index_cache) if args.index_cache else None
    document = SoupDocument(Path(args.input).read_text(encoding="utf-8"))
    scanner = AnnotationScanner(document, cache=TermIndexCache(store))

    matches = scanner.apply(entries)
    for match in matches:
        logging.info("%s -> %s (%s)", match.matched_text, match.entry.id, match.region)

    html = document.to_html()
    if args.output:
        Path(args.output).write_text(html, encoding="utf-8")
        print(f"{len(matches)} annotations written to {args.output}")
    else:
        sys.stdout.buffer.write(html.encode("utf-8"))


def validate(args: argparse.Namespace) -> None:
    """Validate glossary entries from a JSON file."""

    entries = storage.load_glossary(args.input)
    try:
        storage.validate_entries(entries)
    except ValueError as e:
        raise SystemExit(f"invalid glossary: {e}")

    print(f"Glossary '{args.input}' OK ({len(entries)} entries)")


def stats(args: argparse.Namespace) -> None:
    """Show statistics about a glossary file."""

    entries = storage.load_glossary(args.input)
    enabled = [e for e in entries if e.enabled]
    display_only = [e for e in entries if not entry_triggers(e)]
    index = build_term_index(entries)

    data = {
        "entries": len(entries),
        "enabled": len(enabled),
        "display_only": len(display_only),
        "indexed_terms": len(index),
        "longest_term": index[0].term if index else None,
    }
    if args.json:
        print(json.dumps(data, ensure_ascii=False))
        return

    print(f"Entries: {data['entries']}")
    print(f"Enabled: {data['enabled']}")
    print(f"Display only: {data['display_only']}")
    print(f"Indexed terms: {data['indexed_terms']}")


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Glossary utility")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("annotate", help="annotate glossary terms in an HTML page")
    p.add_argument("input", type=Path, help="HTML file")
    p.add_argument("--entries", type=Path, required=True, help="glossary JSON file")
    p.add_argument(
        "--output",
        type=Path,
        default=None,
        help="write annotated HTML to this file instead of stdout",
    )
    p.add_argument(
        "--index-cache",
        type=Path,
        default=None,
        help="optional JSON file to persist the term index",
    )
    p.set_defaults(func=annotate)

    p = sub.add_parser("validate", help="validate glossary data")
    p.add_argument("input", type=Path)
    p.set_defaults(func=validate)

    p = sub.add_parser("stats", help="show statistics")
    p.add_argument("input", type=Path)
    p.add_argument("--json", action="store_true", help="print statistics as JSON")
    p.set_defaults(func=stats)

    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase verbosity")
    parser.add_argument("--log-file", type=Path, default=None, help="write logs to this file")

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG

    configure_logging(level=level, log_file=args.log_file)

    args.func(args)


if __name__ == "__main__":
    main()
