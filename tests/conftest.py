"""Shared test fixtures."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

TODO_SCHEMA = """\
.: Struct
.title: MVReg<String>
.tasks: Array
.tasks.[]: Struct
.tasks.[].title: MVReg<String>
.tasks.[].complete: EWFlag
"""

# One field per leaf kind plus every container kind.
KITCHEN_SCHEMA = """\
.: Struct
.name: MVReg<String>
.count: MVReg<u64>
.delta: MVReg<i64>
.ready: MVReg<bool>
.done: EWFlag
.nothing: Null
.meta: Struct
.meta.a: MVReg<String>
.meta.b: MVReg<String>
.tags: Array
.tags.[]: MVReg<String>
.flags: Array
.flags.[]: EWFlag
.labels: Table<String>
.labels.{}: MVReg<String>
.todos: Table<u64>
.todos.{}: Struct
.todos.{}.title: MVReg<String>
.todos.{}.complete: EWFlag
.grid: Array
.grid.[]: Array
.grid.[].[]: MVReg<i64>
"""


@pytest.fixture()
def engine():
    """Return an engine with a fixed, valid peer id."""
    from localfirst.core.config import default_config
    from localfirst.core.document import Engine

    config = default_config()
    config["peer_id"] = "peer_01HZZZZZZZZZZZZZZZZZZZZZZA"
    return Engine(config)


@pytest.fixture()
def todo_doc(engine):
    """Return an empty document with the todo-app shape."""
    return engine.create_document(TODO_SCHEMA)


@pytest.fixture()
def todo(todo_doc):
    """Return a root handle on ``todo_doc``."""
    from localfirst.proxy.handle import proxy

    return proxy(todo_doc)


@pytest.fixture()
def kitchen_doc(engine):
    """Return an empty document covering every container and leaf kind."""
    return engine.create_document(KITCHEN_SCHEMA)


@pytest.fixture()
def kitchen(kitchen_doc):
    from localfirst.proxy.handle import proxy

    return proxy(kitchen_doc)


@pytest.fixture()
def make_replica():
    """Factory fixture: a second engine holding a replica of a document.

    Usage::

        replica = make_replica(todo_doc, "peer_01HZZZZZZZZZZZZZZZZZZZZZZB")
    """
    from localfirst.core.config import default_config
    from localfirst.core.document import Engine

    def _make(document, peer_id: str):
        config = default_config()
        config["peer_id"] = peer_id
        return Engine(config).create_document(document.schema, doc_id=document.id)

    return _make


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def invoke(cli_runner: CliRunner, monkeypatch):
    """Return a helper that invokes CLI commands with a clean environment.

    Usage::

        result = invoke("schema", "compile", "todo.schema")
    """
    from localfirst.cli.main import cli

    monkeypatch.delenv("LOCALFIRST_CONFIG", raising=False)
    monkeypatch.delenv("LOCALFIRST_PEER_ID", raising=False)

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), **kwargs)

    return _invoke
