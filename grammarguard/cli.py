"""
Command-line front end for GrammarGuard.

Usage:
    grammarguard check "Their going to the store"
    grammarguard rewrite "see you tomorrow" --style Formal
    grammarguard define serendipity
    grammarguard history | stats | activity
    grammarguard export [PATH] | import PATH
    grammarguard key set KEY | key show | key clear
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from grammarguard.app.session import EditorSession, LoadingState
from grammarguard.config import STATE_DB_PATH
from grammarguard.dictionary.client import DictionaryClient
from grammarguard.infrastructure.env import ensure_env_loaded
from grammarguard.llm.service import LanguageService
from grammarguard.stats.activity import bucket_by_category, bucket_by_day
from grammarguard.storage.kv import SqliteStorage
from grammarguard.storage.models import HistoryCategory, RewriteStyle
from grammarguard.storage.state_store import StateStore, export_filename


def build_session(store: StateStore) -> EditorSession:
    return EditorSession(
        store=store,
        language=LanguageService(credential_provider=store.get_credential),
        dictionary=DictionaryClient(),
    )


def _print_failure(session: EditorSession) -> int:
    print(f"Error: {session.last_error}")
    if session.needs_credential:
        print("Run `grammarguard key set YOUR_KEY` to configure your API key.")
    return 1


async def _check(store: StateStore, text: str) -> int:
    session = build_session(store)
    session.set_input(text)
    result = await session.check_grammar()
    await session.snapshots.flush()
    if result is None:
        return _print_failure(session)

    for segment in result.segments:
        if segment.is_error:
            label = segment.severity.value if segment.severity else "critical"
            print(f"  [{label}] {segment.text.strip()!r} -> {segment.correction or ''} ({segment.reason or ''})")
    print(f"\nCorrected: {result.corrected_sentence}")
    print(f"\n{result.explanation.overview}")
    for improvement in result.explanation.improvements:
        print(f"  - {improvement}")
    if session.quick_rewrite.styles:
        print("\nTry a rewrite: " + ", ".join(style.value for style in session.quick_rewrite.styles))
    return 0


async def _rewrite(store: StateStore, text: str, style: RewriteStyle) -> int:
    session = build_session(store)
    session.set_input(text)
    result = await session.rewrite(style)
    await session.snapshots.flush()
    if result is None or session.loading_state is LoadingState.ERROR:
        return _print_failure(session)

    print(result.rewritten_text)
    print(f"\n{result.explanation.overview}")
    for improvement in result.explanation.improvements:
        print(f"  - {improvement}")
    return 0


async def _define(store: StateStore, word: str) -> int:
    session = build_session(store)
    entries = await session.lookup_word(word)
    if not entries:
        print(session.lookup.error)
        return 1

    for entry in entries:
        print(f"{entry.word} {entry.phonetic or ''}".rstrip())
        for meaning in entry.meanings:
            print(f"  {meaning.part_of_speech}")
            for number, definition in enumerate(meaning.definitions, start=1):
                print(f"    {number}. {definition.definition}")
                if definition.example:
                    print(f"       e.g. {definition.example}")
    return 0


def _history(store: StateStore) -> int:
    for entry in store.read_history():
        marker = "ok" if entry.is_perfect else f"{entry.error_count}e/{entry.suggestion_count}s"
        style = f" ({entry.rewrite_style})" if entry.rewrite_style else ""
        print(f"{entry.timestamp}  {entry.category.value:<10} {marker:<8} {entry.text_snippet}{style}")
    return 0


def _stats(store: StateStore) -> int:
    stats = store.compute_stats()
    print(f"Total checks:  {stats.total_checks}")
    print(f"Total errors:  {stats.total_errors}")
    print(f"Perfect runs:  {stats.perfect_runs}")
    print(f"Accuracy:      {stats.accuracy_rate}%")
    return 0


def _activity(store: StateStore) -> int:
    history = store.read_history()
    grid = bucket_by_day(history)
    for weekday in range(7):
        row = ""
        for week in grid:
            day = week[weekday]
            row += " " if day.is_future else ("." if day.count == 0 else "#")
        print(row)

    breakdown = bucket_by_category(history)
    print()
    for category in HistoryCategory:
        share = round(100 * breakdown.proportion(category))
        print(f"{category.value:<10} {breakdown.count(category):>5}  {share:>3}%")
    return 0


def _export(store: StateStore, path: str | None) -> int:
    target = Path(path) if path else Path(export_filename())
    try:
        target.write_text(store.export_snapshot(), encoding="utf-8")
    except OSError as e:
        print(f"Could not write {target}: {e}")
        return 1
    print(f"Exported history to {target}")
    return 0


def _import(store: StateStore, path: str) -> int:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Could not read {path}: {e}")
        return 1

    result = store.import_snapshot(content)
    if not result.success:
        print("Import failed: not a valid GrammarGuard backup, or stored history is unreadable.")
        return 1
    if result.recovered_theme:
        store.set_theme(result.recovered_theme)
    if result.recovered_color_scheme:
        store.set_color_scheme(result.recovered_color_scheme)
    print(f"Imported {result.imported_count} new entries.")
    return 0


def _mask(key: str | None) -> str:
    if not key:
        return "No API key stored."
    # Keys of 8 characters or fewer are masked entirely
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def _key(store: StateStore, action: str, value: str | None) -> int:
    if action == "set":
        if not value:
            print("Usage: grammarguard key set KEY")
            return 2
        return 0 if store.set_credential(value) else 1
    if action == "show":
        print(_mask(store.get_credential()))
        return 0
    return 0 if store.clear_credential() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grammarguard", description="Grammar checks, rewrites and lookups with local history"
    )
    parser.add_argument("--db", default=str(STATE_DB_PATH), help="Path to the state database")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Check grammar, spelling and style")
    check.add_argument("text")

    rewrite = sub.add_parser("rewrite", help="Rewrite text in a style")
    rewrite.add_argument("text")
    rewrite.add_argument(
        "--style",
        default=RewriteStyle.PROFESSIONAL.value,
        choices=[style.value for style in RewriteStyle],
    )

    define = sub.add_parser("define", help="Look up a word")
    define.add_argument("word")

    sub.add_parser("history", help="List history, newest first")
    sub.add_parser("stats", help="Grammar-check statistics")
    sub.add_parser("activity", help="Activity grid and category breakdown")

    export = sub.add_parser("export", help="Write a backup file")
    export.add_argument("path", nargs="?")

    import_ = sub.add_parser("import", help="Merge a backup file into history")
    import_.add_argument("path")

    key = sub.add_parser("key", help="Manage the stored API key")
    key.add_argument("action", choices=["set", "show", "clear"])
    key.add_argument("value", nargs="?")

    return parser


def main(argv: list[str] | None = None) -> int:
    ensure_env_loaded()
    args = build_parser().parse_args(argv)

    storage = SqliteStorage(args.db)
    store = StateStore(storage)
    store.load_snapshot_or_none()
    try:
        if args.command == "check":
            return asyncio.run(_check(store, args.text))
        if args.command == "rewrite":
            return asyncio.run(_rewrite(store, args.text, RewriteStyle(args.style)))
        if args.command == "define":
            return asyncio.run(_define(store, args.word))
        if args.command == "history":
            return _history(store)
        if args.command == "stats":
            return _stats(store)
        if args.command == "activity":
            return _activity(store)
        if args.command == "export":
            return _export(store, args.path)
        if args.command == "import":
            return _import(store, args.path)
        return _key(store, args.action, args.value)
    finally:
        storage.close()


if __name__ == "__main__":
    raise SystemExit(main())
