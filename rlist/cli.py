"""
CLI interface for the reading list.

Usage:
    rlist add https://example.com/post "A post" -a alice -t rust
    rlist list author:alice date:today --sort-by title
    rlist edit a1 --add-topic go
    rlist rm --topic go
"""

import json
import os
import sys
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from .codec import ImportMode, export_json, import_data
from .config import (
    RlistConfig,
    default_config,
    get_default_config_file,
    load_config,
    resolve_db_file,
    save_config,
)
from .entry_store import EntryStore
from .errors import ConfigError, DuplicateIdentifier, RlistError
from .ids import IdentifierGenerator
from .logging_config import (
    configure_ops_log,
    configure_quiet_mode,
    enable_debug_mode,
    remove_ops_log,
)
from .query import FilterSpec, Query, SortField
from .types import Entry, EntryPatch, FieldPatch, TopicsPatch, validate_identifier


# Quiet by default; RLIST_VERBOSE=1 turns on debug output from the start
if os.environ.get("RLIST_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import PackageNotFoundError, version
        try:
            typer.echo(f"rlist {version('rlist')}")
        except PackageNotFoundError:
            typer.echo("rlist (not installed)")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options, reset by main_callback on every invocation
_json_output = False
_db_override: Optional[Path] = None
_config_override: Optional[Path] = None


def _get_json_output() -> bool:
    return _json_output


app = typer.Typer(
    name="rlist",
    help="A personal reading list.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    db: Annotated[Optional[Path], typer.Option(
        "--db",
        envvar="RLIST_DB",
        help="Path to the reading list file (default: from config, else ~/rlist/rlist.sqlite)",
    )] = None,
    config: Annotated[Optional[Path], typer.Option(
        "--config", "-c",
        envvar="RLIST_CONFIG",
        help="Path to the config file (default: ~/.config/rlist.toml)",
    )] = None,
):
    """A personal reading list."""
    global _json_output, _db_override, _config_override
    _json_output = output_json
    _db_override = db
    _config_override = config


# -----------------------------------------------------------------------------
# Store access
# -----------------------------------------------------------------------------

def _fail(error: RlistError):
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(error.exit_code)


def _load_config() -> RlistConfig:
    return load_config(_config_override)


@contextmanager
def _open_store() -> Iterator[tuple[EntryStore, RlistConfig]]:
    """Open the store for one command; always closed, errors mapped to exit codes."""
    try:
        cfg = _load_config()
        db_file = resolve_db_file(_db_override, cfg)
        ops_handler = configure_ops_log(db_file)
        try:
            with EntryStore(db_file) as store:
                yield store, cfg
        finally:
            remove_ops_log(ops_handler)
    except RlistError as e:
        _fail(e)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _format_entry(entry: Entry, cfg: RlistConfig, long: bool = False) -> str:
    name = typer.style(entry.identifier, fg=typer.colors.YELLOW, bold=True)
    url = typer.style(entry.url, fg=typer.colors.BLUE, underline=True)
    by = ""
    if entry.author:
        by = f" by {typer.style(entry.author, fg=typer.colors.GREEN)}"
    line = f"{name}: {entry.title} <{url}>{by}"
    if not long:
        return line

    lines = [line]
    if entry.topics:
        topics = ", ".join(typer.style(t, fg=typer.colors.MAGENTA) for t in sorted(entry.topics))
        lines.append(f"Topics: {topics}")
    lines.append(f"Added on {cfg.format_date(entry.date_added)}")
    return "\n".join(lines)


def _format_entries(entries: list[Entry], cfg: RlistConfig, long: bool = False) -> str:
    if _get_json_output():
        return json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False)
    if not entries:
        return "No entries found."
    sep = "\n\n" if long else "\n"
    return sep.join(_format_entry(e, cfg, long=long) for e in entries)


def _echo_entry(entry: Entry, cfg: RlistConfig, heading: str = "") -> None:
    if _get_json_output():
        typer.echo(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
        return
    if heading:
        typer.echo(heading)
    typer.echo(_format_entry(entry, cfg, long=True))


def _lex_query_tokens(tokens: Optional[list[str]]) -> dict:
    """
    Split free-form list arguments into filter fields.

    ``author:NAME`` and ``date:EXPR`` set those filters; every other word
    is part of the name/title search text.
    """
    fields: dict = {}
    words: list[str] = []
    for token in tokens or []:
        key, sep, value = token.partition(":")
        key = key.casefold()
        if sep and key == "author" and value:
            fields["author"] = value
        elif sep and key == "date" and value:
            fields["date_token"] = value
        else:
            words.append(token)
    if words:
        fields["name_substring"] = " ".join(words)
    return fields


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

TopicOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--topic", "-t",
        help="Topic (repeatable)"
    )
]


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    url: Annotated[str, typer.Argument(help="URL of the resource")],
    title: Annotated[str, typer.Argument(help="Title")],
    id: Annotated[Optional[str], typer.Option(
        "--id", "-i",
        help="Identifier (default: derived from URL and today's date)"
    )] = None,
    author: Annotated[Optional[str], typer.Option("--author", "-a", help="Author")] = None,
    topic: TopicOption = None,
):
    """
    Add an entry to the reading list.

    \b
    Examples:
        rlist add https://a.example/1 "Post A" --id a1 -a alice -t rust
        rlist add https://b.example/2 "Post B" -t rust -t go
    """
    with _open_store() as (store, cfg):
        today = date.today()
        identifier = IdentifierGenerator().generate(url, today, candidate=id)
        entry = store.create(Entry(
            identifier=identifier,
            url=url,
            title=title,
            author=author,
            topics=frozenset(topic or []),
            date_added=today,
        ))
        _echo_entry(entry, cfg, heading="Entry added to your reading list:")


app.command("a", hidden=True)(add)


@app.command()
def edit(
    id: Annotated[str, typer.Argument(help="Identifier of the entry to edit")],
    new_id: Annotated[Optional[str], typer.Argument(help="Rename the entry to this identifier")] = None,
    url: Annotated[Optional[str], typer.Option("--url", help="New URL")] = None,
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    author: Annotated[Optional[str], typer.Option("--author", "-a", help="New author")] = None,
    clear_author: Annotated[bool, typer.Option("--clear-author", help="Remove the author")] = False,
    topic: Annotated[Optional[list[str]], typer.Option(
        "--topic", "-t",
        help="Replace all topics (repeatable); same as --clear-topics --add-topic ..."
    )] = None,
    add_topic: Annotated[Optional[list[str]], typer.Option("--add-topic", help="Add a topic (repeatable)")] = None,
    remove_topic: Annotated[Optional[list[str]], typer.Option("--remove-topic", help="Remove a topic (repeatable)")] = None,
    clear_topics: Annotated[bool, typer.Option("--clear-topics", help="Remove all topics")] = False,
):
    """
    Edit an entry, optionally renaming it.

    \b
    Examples:
        rlist edit a1 --author alice --add-topic rust
        rlist edit a1 --clear-author --remove-topic go
        rlist edit a1 post-a          # rename
    """
    if author is not None and clear_author:
        typer.echo("Error: use either --author or --clear-author, not both", err=True)
        raise typer.Exit(1)

    author_patch = FieldPatch.unchanged()
    if clear_author:
        author_patch = FieldPatch.clear()
    elif author is not None:
        author_patch = FieldPatch.set(author)

    with _open_store() as (store, cfg):
        if topic:
            topics_patch = TopicsPatch(add=frozenset(topic), clear=True)
        else:
            topics_patch = TopicsPatch(
                add=frozenset(add_topic or []),
                remove=frozenset(remove_topic or []),
                clear=clear_topics,
            )
        patch = EntryPatch(
            url=FieldPatch.set(url) if url is not None else FieldPatch.unchanged(),
            title=FieldPatch.set(title) if title is not None else FieldPatch.unchanged(),
            author=author_patch,
            topics=topics_patch,
        )
        if patch == EntryPatch() and new_id is None:
            typer.echo("Error: nothing to change", err=True)
            raise typer.Exit(1)

        # Check the rename before touching anything so a failed rename
        # does not leave the field changes behind
        entry = store.get(id)
        if new_id is not None and new_id != id:
            validate_identifier(new_id)
            if store.exists(new_id):
                raise DuplicateIdentifier(new_id)

        if patch != EntryPatch():
            entry = store.update(id, patch)
        if new_id is not None:
            entry = store.rename(id, new_id)
        _echo_entry(entry, cfg, heading="The entry is now:")


app.command("e", hidden=True)(edit)


@app.command()
def rename(
    old: Annotated[str, typer.Argument(help="Current identifier")],
    new: Annotated[str, typer.Argument(help="New identifier")],
):
    """Rename an entry, keeping everything else."""
    with _open_store() as (store, cfg):
        entry = store.rename(old, new)
        if _get_json_output():
            typer.echo(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
        else:
            typer.echo(f"Renamed {old} to {entry.identifier}")


@app.command("mv", hidden=True)
def mv(
    old: Annotated[str, typer.Argument(help="Current identifier")],
    new: Annotated[str, typer.Argument(help="New identifier")],
):
    """Rename an entry (alias for 'rename')."""
    rename(old=old, new=new)


@app.command("rm")
def rm_cmd(
    id: Annotated[Optional[str], typer.Argument(
        help="Identifier of the entry to delete (takes precedence over --topic)"
    )] = None,
    topic: Annotated[Optional[list[str]], typer.Option(
        "--topic", "-t",
        help="Delete every entry with any of these topics (repeatable)"
    )] = None,
):
    """
    Delete an entry, or every entry with any of the given topics.

    \b
    Examples:
        rlist rm a1
        rlist rm --topic go --topic old
    """
    if id is None and not topic:
        typer.echo("Error: give an identifier or at least one --topic", err=True)
        raise typer.Exit(1)

    with _open_store() as (store, cfg):
        if id is not None:
            entry = store.delete(id)
            _echo_entry(entry, cfg, heading="Removed entry:")
            return

        removed = store.delete_by_topics(topic)
        if _get_json_output():
            typer.echo(json.dumps(
                {"removed": len(removed), "entries": [e.to_dict() for e in removed]},
                indent=2, ensure_ascii=False,
            ))
        elif not removed:
            typer.echo("No entries were removed.")
        else:
            typer.echo("Removed these entries:")
            for entry in removed:
                typer.echo(_format_entry(entry, cfg))
            typer.echo(f"Removed {len(removed)} {'entry' if len(removed) == 1 else 'entries'}.")


@app.command("delete", hidden=True)
def delete(
    id: Annotated[Optional[str], typer.Argument(help="Identifier of the entry to delete")] = None,
    topic: TopicOption = None,
):
    """Delete entries (alias for 'rm')."""
    rm_cmd(id=id, topic=topic)


@app.command("list")
def list_entries(
    tokens: Annotated[Optional[list[str]], typer.Argument(
        help="Search text, author:NAME, date:today|yesterday|DD-MM-YY"
    )] = None,
    topic: Annotated[Optional[list[str]], typer.Option(
        "--topic", "-t",
        help="Only entries with this topic (repeatable, all must match)"
    )] = None,
    url: Annotated[Optional[str], typer.Option("--url", help="Only URLs containing this text")] = None,
    date_from: Annotated[Optional[str], typer.Option(
        "--from", help="Added on or after (DD-MM-YY, today, yesterday)"
    )] = None,
    date_to: Annotated[Optional[str], typer.Option(
        "--to", help="Added on or before (DD-MM-YY, today, yesterday)"
    )] = None,
    sort_by: Annotated[str, typer.Option(
        "--sort-by", "-s",
        help=f"Sort by: {', '.join(f.value for f in SortField)}"
    )] = SortField.DATE.value,
    desc: Annotated[bool, typer.Option("--desc", help="Sort in descending order")] = False,
    limit: Annotated[int, typer.Option("--limit", "-n", min=0, help="Maximum results (0 = all)")] = 0,
    long: Annotated[bool, typer.Option("--long", "-l", help="Show topics and date added")] = False,
):
    """
    List and search the reading list.

    \b
    Examples:
        rlist list                          # Everything, oldest first
        rlist list author:alice             # By author
        rlist list date:today               # Added today
        rlist list rust -t go               # 'rust' in name/title, topic go
        rlist list --from 01-03-24 --to 31-03-24 --sort-by title
        rlist list --sort-by date --desc -n 5
    """
    spec = FilterSpec(
        topics=frozenset(topic or []),
        url_substring=url,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        descending=desc,
        limit=limit,
        **_lex_query_tokens(tokens),
    )
    with _open_store() as (store, cfg):
        entries = list(Query(store, spec))
        typer.echo(_format_entries(entries, cfg, long=long))


app.command("find", hidden=True)(list_entries)
app.command("ls", hidden=True)(list_entries)


@app.command()
def show(
    id: Annotated[str, typer.Argument(help="Identifier of the entry")],
):
    """Show one entry in full."""
    with _open_store() as (store, cfg):
        _echo_entry(store.get(id), cfg)


@app.command()
def topics():
    """List topics with the number of entries for each."""
    with _open_store() as (store, cfg):
        counts = store.list_topics()
        if _get_json_output():
            typer.echo(json.dumps(dict(counts), indent=2, ensure_ascii=False))
        elif not counts:
            typer.echo("No topics found.")
        else:
            for name, n in counts:
                typer.echo(f"{name} ({n})")


@app.command()
def config(
    init: Annotated[bool, typer.Option("--init", help="Write a default config file")] = False,
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing config with --init")] = False,
):
    """Show the resolved configuration, or write a default one with --init."""
    config_path = _config_override or get_default_config_file()

    if init:
        if config_path.exists() and not force:
            typer.echo(f"Error: config already exists: {config_path} (use --force)", err=True)
            raise typer.Exit(1)
        cfg = default_config()
        if _db_override is not None:
            cfg.db_file = resolve_db_file(_db_override, cfg).resolve()
        save_config(cfg, config_path)
        typer.echo(f"Wrote {config_path}", err=True)
    else:
        try:
            cfg = _load_config()
        except ConfigError as e:
            _fail(e)

    db_file = resolve_db_file(_db_override, cfg)
    result = {
        "file": str(cfg.source) if cfg.source else None,
        "db_file": str(db_file),
        "date_format": cfg.date_format,
    }
    if _get_json_output():
        typer.echo(json.dumps(result, indent=2))
    else:
        typer.echo(f"file: {result['file'] or '(none, using defaults)'}")
        typer.echo(f"db_file: {result['db_file']}")
        typer.echo(f"date_format: {result['date_format']}")


# -----------------------------------------------------------------------------
# Data Management
# -----------------------------------------------------------------------------

data_app = typer.Typer(
    name="data",
    help="Data management: export and import.",
    rich_markup_mode=None,
)
app.add_typer(data_app)


@data_app.command("export")
def data_export(
    output: Annotated[str, typer.Argument(
        help="Output file path (use '-' for stdout)"
    )] = "-",
):
    """Export the reading list to JSON for backup or migration."""
    with _open_store() as (store, cfg):
        text = export_json(store)
        count = store.count()

    if output == "-":
        typer.echo(text, nl=False)
        return
    Path(output).write_text(text, encoding="utf-8")
    typer.echo(f"Exported {count} entries to {output}", err=True)


@data_app.command("import")
def data_import(
    file: Annotated[str, typer.Argument(help="JSON export file to import ('-' for stdin)")],
    mode: Annotated[str, typer.Option(
        "--mode", "-m",
        help="fail-on-duplicate (abort if any identifier exists) or overwrite"
    )] = ImportMode.FAIL_ON_DUPLICATE.value,
):
    """Import entries from a JSON export file. Nothing is written if anything fails."""
    if mode not in [m.value for m in ImportMode]:
        typer.echo(
            f"Error: --mode must be one of {', '.join(m.value for m in ImportMode)}, got '{mode}'",
            err=True,
        )
        raise typer.Exit(1)

    if file == "-":
        raw = sys.stdin.buffer.read()
    else:
        path = Path(file)
        if not path.exists():
            typer.echo(f"Error: file not found: {file}", err=True)
            raise typer.Exit(1)
        raw = path.read_bytes()

    with _open_store() as (store, cfg):
        # Raw bytes; the codec decodes and validates
        stats = import_data(store, raw, ImportMode(mode))

    typer.echo(
        f"Imported {stats['imported']} entries ({stats['overwritten']} overwritten).",
        err=True,
    )


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="rlist CLI", store_path=_db_override)
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
