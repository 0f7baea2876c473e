"""CLI entry point and commands."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path

import click

from localfirst.cli.helpers import error_code, json_envelope, output_error
from localfirst.core.config import log_level, resolve_config
from localfirst.core.document import create_memory
from localfirst.core.errors import LocalFirstError
from localfirst.core.schema import (
    decode_descriptor,
    encode_descriptor,
    load_schema,
    parse_schema_text,
    schema_to_text,
)
from localfirst.proxy.translator import materialize, set_path


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Engine config JSON (defaults to $LOCALFIRST_CONFIG).",
)
@click.option(
    "--log-level",
    "level_name",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the config's log level.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, level_name: str | None) -> None:
    """localfirst: schema tools and scratch documents for replicated data."""
    try:
        config = resolve_config(config_path)
    except LocalFirstError as exc:
        raise click.ClickException(str(exc)) from exc
    if level_name:
        config["log_level"] = level_name.upper()

    logging.basicConfig(level=log_level(config), format="%(levelname)s: %(message)s")
    ctx.obj = config


# ---------------------------------------------------------------------------
# schema
# ---------------------------------------------------------------------------


@cli.group()
def schema() -> None:
    """Compile and inspect schema descriptors."""


@schema.command("compile")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the descriptor here instead of stdout.",
)
@click.option("--base64", "as_base64", is_flag=True, help="Emit base64 text instead of raw bytes.")
def compile_schema(input_path: Path, output_path: Path | None, as_base64: bool) -> None:
    """Compile schema text into a binary descriptor."""
    try:
        descriptor = encode_descriptor(parse_schema_text(input_path.read_text()))
    except LocalFirstError as exc:
        raise click.ClickException(f"{input_path}: {exc}") from exc

    payload = base64.b64encode(descriptor) + b"\n" if as_base64 else descriptor
    if output_path is not None:
        output_path.write_bytes(payload)
        click.echo(f"Wrote {len(descriptor)} byte descriptor to {output_path}", err=True)
    else:
        click.get_binary_stream("stdout").write(payload)


@schema.command("show")
@click.argument("descriptor_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--base64", "as_base64", is_flag=True, help="Input is base64 text.")
def show_schema(descriptor_path: Path, as_base64: bool) -> None:
    """Print a binary descriptor as schema text."""
    raw = descriptor_path.read_bytes()
    try:
        if as_base64:
            raw = base64.b64decode(raw.strip(), validate=True)
        schema_tree = decode_descriptor(raw)
    except (LocalFirstError, ValueError) as exc:
        raise click.ClickException(f"{descriptor_path}: {exc}") from exc
    click.echo(schema_to_text(schema_tree), nl=False)


# ---------------------------------------------------------------------------
# apply
# ---------------------------------------------------------------------------


def _parse_assignment(raw: str) -> tuple[str, object]:
    path, sep, value = raw.partition("=")
    if not sep:
        raise click.BadParameter(f"Expected PATH=JSON, got {raw!r}", param_hint="--set")
    try:
        return path.strip(), json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid JSON for {path!r}: {exc}", param_hint="--set") from exc


@cli.command("apply")
@click.argument("schema_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="PATH=JSON",
    help="Write a JSON value at PATH (repeatable; applied in order).",
)
@click.option("--json", "output_json", is_flag=True, help="Output a JSON envelope.")
@click.pass_obj
def apply_cmd(config: dict, schema_path: Path, assignments: tuple[str, ...], output_json: bool) -> None:
    """Apply writes to a scratch in-memory document and print it."""
    writes = [_parse_assignment(raw) for raw in assignments]

    try:
        schema_tree = load_schema(schema_path.read_bytes())
        document = asyncio.run(create_memory(schema_tree, config))
        results = [
            {"path": path, "applied": set_path(document, path, value)} for path, value in writes
        ]
        data = materialize(document.create_cursor())
    except LocalFirstError as exc:
        output_error(str(exc), error_code(exc), output_json)

    if output_json:
        click.echo(json_envelope(True, data={"document": data, "writes": results}))
        return

    for result in results:
        if not result["applied"]:
            click.echo(f"no-op: {result['path']}", err=True)
    click.echo(json.dumps(data, sort_keys=True, indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
