"""Tests for the client provisioning script."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from oauth_provider.clients import SQLiteStore
from oauth_provider.services import ClientRegistry
from scripts import register_client


def _output_values(captured: str) -> dict[str, str]:
    values = {}
    for line in captured.splitlines():
        key, sep, value = line.partition(": ")
        if sep:
            values[key] = value
    return values


def test_register_prints_credentials_once(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "clients.db"

    exit_code = register_client.main(
        [
            "--name",
            "Photo Printer",
            "--redirect-uri",
            "https://printer.example.com/cb",
            "--grant-type",
            "authorization_code",
            "--grant-type",
            "refresh_token",
            "--db-path",
            str(db_path),
        ]
    )

    assert exit_code == register_client.EXIT_OK
    values = _output_values(capsys.readouterr().out)
    store = SQLiteStore(str(db_path))
    client = store.get_client(values["client_id"])
    assert client.name == "Photo Printer"
    assert client.grant_types == frozenset({"authorization_code", "refresh_token"})
    assert values["client_secret"] not in client.client_secret_hash
    assert ClientRegistry(store).authenticate(client.client_id, values["client_secret"])


def test_register_rejects_blank_name(tmp_path: Path) -> None:
    exit_code = register_client.main(
        [
            "--name",
            "",
            "--redirect-uri",
            "https://printer.example.com/cb",
            "--db-path",
            str(tmp_path / "clients.db"),
        ]
    )

    assert exit_code == register_client.EXIT_VALIDATION_ERROR


def test_missing_arguments_exit_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        register_client.main(["--name", "Only name"])

    assert excinfo.value.code == 2
