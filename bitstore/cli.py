"""
bitstore CLI - Typer entry point

Commands: status, new-id, key, put, get, rm, stat
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from bitstore.config import load_descriptor
from bitstore.errors import IOFailure
from bitstore.keys import generate_identifier
from bitstore.store import BitstreamStore

app = typer.Typer()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Manage bitstreams in the configured assetstore."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _store() -> BitstreamStore:
    try:
        return BitstreamStore(load_descriptor())
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(2)


def _ready_store() -> BitstreamStore:
    store = _store()
    asyncio.run(store.initialize())
    if not store.is_initialized():
        typer.echo(
            f"Store not ready: provider {store.descriptor.provider.value} failed to initialize",
            err=True,
        )
        sys.exit(1)
    return store


def _fail(e: IOFailure) -> NoReturn:
    typer.echo(f"Error: {e}", err=True)
    sys.exit(1)


@app.command()
def status() -> None:
    """Show the configured provider and whether it initializes."""
    store = _store()
    asyncio.run(store.initialize())
    d = store.descriptor
    typer.echo(f"provider: {d.provider.value}")
    typer.echo(f"container: {d.container}")
    typer.echo(f"enabled: {'yes' if store.is_enabled() else 'no'}")
    typer.echo(f"state: {store.state.value}")


@app.command("new-id")
def new_id() -> None:
    """Print a fresh internal id."""
    typer.echo(generate_identifier())


@app.command()
def key(identifier: str) -> None:
    """Print the storage key for an internal id."""
    try:
        typer.echo(_store().derive_key(identifier))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command()
def put(
    identifier: str,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    content_type: Optional[str] = typer.Option(None, "--content-type", "-t"),
) -> None:
    """Store a local file under an internal id."""
    store = _ready_store()
    try:
        with file.open("rb") as f:
            result = asyncio.run(store.write(identifier, f, content_type))
    except IOFailure as e:
        _fail(e)
    typer.echo(json.dumps(asdict(result), indent=2))


@app.command()
def get(
    identifier: str,
    output: Optional[Path] = typer.Option(None, "--output", "-o"),
) -> None:
    """Fetch an object (default: stdout)."""
    store = _ready_store()
    try:
        stream = asyncio.run(store.read(identifier))
    except IOFailure as e:
        _fail(e)
    data = stream.read()
    if output:
        output.write_bytes(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.flush()


@app.command()
def rm(identifier: str) -> None:
    """Delete an object. Absent objects are not an error."""
    store = _ready_store()
    try:
        asyncio.run(store.delete(identifier))
    except IOFailure as e:
        _fail(e)


@app.command()
def stat(
    identifier: str,
    attr: Optional[List[str]] = typer.Option(None, "--attr", "-a"),
) -> None:
    """Print object metadata as JSON."""
    store = _ready_store()
    try:
        meta = asyncio.run(store.stat(identifier, attr or None))
    except IOFailure as e:
        _fail(e)
    typer.echo(json.dumps(meta, indent=2))
