"""Tests for the public package facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from tola_rates import (
    DatabaseBackend,
    DatabaseConnectionInfo,
    Settings,
    TolaRates,
    __version__,
)
from tola_rates.db.sqlite_backend import SQLiteBackend
from tola_rates.ingestion.source import HtmlRateSource, JsonRateSource
from tola_rates.notifications.onesignal import OneSignalNotifier


def test_tola_rates_class_is_exposed() -> None:
    assert TolaRates.__version__ == __version__


def test_sqlite_dsn_builds_sqlite_store(tmp_path: Path, make_source) -> None:
    rates = TolaRates(
        f"sqlite:///{tmp_path / 'tola.db'}",
        source=make_source({"date": "2081-01-01", "gold": 100000, "silver": 1200}),
    )
    try:
        assert rates.backend == "sqlite"
        assert isinstance(rates.store, SQLiteBackend)
        assert rates.store.db_path == (tmp_path / "tola.db").resolve()
        assert rates.prices()["status"] == "live"
        assert rates.history(7)["data"][0]["date"] == "2081-01-01"
    finally:
        rates.close()


def test_settings_db_url_is_used(tmp_path: Path, make_source) -> None:
    settings = Settings(db_url=f"sqlite:///{tmp_path / 'settings.db'}")

    rates = TolaRates(settings=settings, source=make_source({}))
    try:
        assert rates.connection_info.name == str((tmp_path / "settings.db").resolve())
    finally:
        rates.close()


def test_injected_store_and_collaborators(memory_store, make_source, notifier) -> None:
    rates = TolaRates(
        store=memory_store,
        source=make_source({"date": "2081-01-01", "gold": 100000, "silver": 1200}),
        notifier=notifier,
    )

    decision = rates.notify()
    rates.tick()

    assert decision.should_notify
    assert len(notifier.sent) == 1
    assert rates.prices()["date"] == "2081-01-01"


def test_default_collaborators_follow_settings(memory_store) -> None:
    json_rates = TolaRates(store=memory_store)
    html_rates = TolaRates(
        store=memory_store,
        settings=Settings(
            source_format="html",
            source_url="https://www.fenegosida.org/",
            onesignal_app_id="app",
            onesignal_api_key="key",
        ),
    )

    assert isinstance(json_rates.service.source, JsonRateSource)
    assert json_rates.service.notifier is None
    assert isinstance(html_rates.service.source, HtmlRateSource)
    assert isinstance(html_rates.service.notifier, OneSignalNotifier)


def test_settings_flow_into_service(memory_store) -> None:
    rates = TolaRates(
        store=memory_store, settings=Settings(history_limit=30, carry_forward_direction=False)
    )

    assert rates.service.history_store.limit == 30
    assert rates.service.carry_forward_direction is False


@pytest.mark.parametrize(
    "scheme, backend",
    [
        ("postgresql", DatabaseBackend.POSTGRES),
        ("postgres", DatabaseBackend.POSTGRES),
        ("postgresql+psycopg2", DatabaseBackend.POSTGRES),
        ("mysql+pymysql", DatabaseBackend.MYSQL),
        ("sqlite", DatabaseBackend.SQLITE),
        ("mongodb+srv", DatabaseBackend.MONGODB),
    ],
)
def test_database_backend_from_scheme_handles_aliases(
    scheme: str, backend: DatabaseBackend
) -> None:
    assert DatabaseBackend.from_scheme(scheme) is backend


def test_unsupported_scheme_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported database backend"):
        DatabaseBackend.from_scheme("redis")


def test_database_connection_info_requires_scheme() -> None:
    with pytest.raises(ValueError, match="DB_URL must include a scheme"):
        DatabaseConnectionInfo.from_url("localhost/tola")


def test_database_connection_info_from_url() -> None:
    info = DatabaseConnectionInfo.from_url("postgres://user:pwd@db:5432/tola")

    assert info.backend is DatabaseBackend.POSTGRES
    assert info.url == "postgresql://user:pwd@db:5432/tola"
    assert info.host == "db"
    assert info.port == 5432
    assert info.name == "tola"


def test_database_name_is_extracted_from_query_parameters() -> None:
    info = DatabaseConnectionInfo.from_url(
        "mongodb+srv://cluster0.example.com/?retryWrites=false&w=majorityDATABASE_NAME=tola",
    )

    assert info.backend is DatabaseBackend.MONGODB
    assert info.name == "tola"
    assert info.url == "mongodb+srv://cluster0.example.com/tola?retryWrites=false&w=majority"


def test_relative_sqlite_urls_resolve_against_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    info = DatabaseConnectionInfo.from_url("sqlite:///relative.db")

    assert info.backend is DatabaseBackend.SQLITE
    assert info.name == str((tmp_path / "relative.db").resolve())
