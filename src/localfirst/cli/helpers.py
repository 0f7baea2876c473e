"""Shared output helpers for CLI commands."""

from __future__ import annotations

import json
import re
from typing import NoReturn

import click

from localfirst.core.errors import LocalFirstError


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def error_code(exc: LocalFirstError) -> str:
    """``NotAValueType`` -> ``NOT_A_VALUE_TYPE``."""
    return re.sub(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", type(exc).__name__).upper()


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)
