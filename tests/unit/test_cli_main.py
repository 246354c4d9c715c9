"""Unit tests for session_state_lock.cli.main.

Uses Click's test runner (CliRunner) with a context over
InMemoryStoreClient injected through ``obj``, so no cluster is required.
State persists between invocations that share the same context.
"""
from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from session_state_lock.cli.main import _make_context, cli
from session_state_lock.config import StoreConfig
from session_state_lock.context import SessionStoreContext
from session_state_lock.store.memory import InMemoryStoreClient


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def context() -> SessionStoreContext:
    return SessionStoreContext(StoreConfig(application_name="cli"), store=InMemoryStoreClient())


def _invoke(runner: CliRunner, context: SessionStoreContext, *args: str):
    return runner.invoke(cli, list(args), obj={"context": context})


# ---------------------------------------------------------------------------
# _make_context factory
# ---------------------------------------------------------------------------


class TestMakeContext:
    def test_memory_store(self) -> None:
        context = _make_context("memory", None)
        assert isinstance(context.store, InMemoryStoreClient)

    def test_aerospike_store_is_created_lazily(self) -> None:
        context = _make_context("aerospike", None)
        assert context.is_open is False

    def test_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("namespace: prod\nuseUDF: true\n", encoding="utf-8")
        context = _make_context("memory", str(path))
        assert context.config.namespace == "prod"
        assert context.config.use_procedures is True

    def test_unknown_store_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--store", "nosuch", "version"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--store", "memory", "version"])
        assert result.exit_code == 0
        assert "session-state-lock" in result.output
        assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# procedures
# ---------------------------------------------------------------------------


class TestProcedures:
    def test_status_not_installed(self, runner, context) -> None:
        result = _invoke(runner, context, "procedures", "status")
        assert result.exit_code == 0
        assert "not installed" in result.output

    def test_register_then_status(self, runner, context) -> None:
        result = _invoke(runner, context, "procedures", "register")
        assert result.exit_code == 0
        assert "Registered" in result.output

        result = _invoke(runner, context, "procedures", "status")
        assert "not installed" not in result.output
        assert "installed" in result.output

    def test_register_twice(self, runner, context) -> None:
        _invoke(runner, context, "procedures", "register")
        result = _invoke(runner, context, "procedures", "register")
        assert result.exit_code == 0
        assert "already installed" in result.output

    def test_status_does_not_open_engine(self, runner, context) -> None:
        _invoke(runner, context, "procedures", "status")
        assert context.is_open is False


# ---------------------------------------------------------------------------
# session
# ---------------------------------------------------------------------------


class TestSessionCommands:
    def test_create_and_show(self, runner, context) -> None:
        result = _invoke(runner, context, "session", "create", "s1", "--timeout", "30")
        assert result.exit_code == 0
        assert "ttl=30s" in result.output

        result = _invoke(runner, context, "session", "show", "s1")
        assert result.exit_code == 0
        assert "lock id" in result.output
        assert "30s" in result.output

    def test_create_uses_configured_timeout(self, runner, context) -> None:
        result = _invoke(runner, context, "session", "create", "s1")
        assert "ttl=1200s" in result.output

    def test_show_missing(self, runner, context) -> None:
        result = _invoke(runner, context, "session", "show", "nope")
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_show_locked_hides_items(self, runner, context) -> None:
        _invoke(runner, context, "session", "create", "s1")
        context.engine.read_exclusive("s1")
        result = _invoke(runner, context, "session", "show", "s1")
        assert result.exit_code == 0
        assert "hidden while locked" in result.output

    def test_unlock(self, runner, context) -> None:
        _invoke(runner, context, "session", "create", "s1")
        lock_id = context.engine.read_exclusive("s1").lock_id

        result = _invoke(runner, context, "session", "unlock", "s1", "--lock-id", "999")
        assert result.exit_code == 2
        assert "does not match" in result.output

        result = _invoke(runner, context, "session", "unlock", "s1", "--lock-id", str(lock_id))
        assert result.exit_code == 0
        assert "Released s1" in result.output

    def test_remove(self, runner, context) -> None:
        _invoke(runner, context, "session", "create", "s1")
        lock_id = context.engine.read_exclusive("s1").lock_id

        result = _invoke(runner, context, "session", "remove", "s1", "--lock-id", str(lock_id))
        assert result.exit_code == 0

        result = _invoke(runner, context, "session", "show", "s1")
        assert result.exit_code == 2

    def test_reset(self, runner, context) -> None:
        _invoke(runner, context, "session", "create", "s1", "--timeout", "30")
        result = _invoke(runner, context, "session", "reset", "s1")
        assert result.exit_code == 0
        assert "Reset timeout of s1" in result.output

    def test_reset_missing(self, runner, context) -> None:
        result = _invoke(runner, context, "session", "reset", "nope")
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_unlock_requires_lock_id(self, runner, context) -> None:
        result = _invoke(runner, context, "session", "unlock", "s1")
        assert result.exit_code != 0


class TestErrors:
    def test_store_error_exits_1(self, runner, context) -> None:
        context.store.close()
        result = _invoke(runner, context, "session", "show", "s1")
        assert result.exit_code == 1
        assert "Error" in result.output
