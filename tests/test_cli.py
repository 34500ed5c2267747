from __future__ import annotations

import json

import pytest

from tola_rates import TolaRates
from tola_rates.errors import UpstreamUnavailable
from tola_rates.scripts import cli


_READING = {"date": "2081-01-01", "gold": 100000, "silver": 1200}


@pytest.fixture()
def fake_rates(monkeypatch: pytest.MonkeyPatch, memory_store):
    created: dict[str, object] = {}

    def build(source):
        def from_env(**kwargs):
            created["kwargs"] = kwargs
            rates = TolaRates(store=memory_store, source=source)
            created["rates"] = rates
            return rates

        monkeypatch.setattr(cli.TolaRates, "from_env", staticmethod(from_env))
        return created

    return build


def test_parse_args_tick_flags() -> None:
    args = cli.parse_args(["--db", "sqlite:///x.db", "tick", "--no-notify"])

    assert args.db_url == "sqlite:///x.db"
    assert args.command == "tick"
    assert args.notify is False


def test_parse_args_requires_command() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_prices_command_prints_payload(fake_rates, make_source, capsys: pytest.CaptureFixture[str]) -> None:
    created = fake_rates(make_source(_READING))

    assert cli.main(["prices"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "live"
    assert created["kwargs"] == {}


def test_prices_command_exits_non_zero_without_data(
    fake_rates, make_source, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_rates(make_source(UpstreamUnavailable("down")))

    assert cli.main(["prices"]) == 1
    assert json.loads(capsys.readouterr().out) == {
        "status": "error",
        "message": "Service unavailable",
    }


def test_db_option_is_forwarded(fake_rates, make_source, capsys: pytest.CaptureFixture[str]) -> None:
    created = fake_rates(make_source(_READING))

    cli.main(["--db", "sqlite:///other.db", "history", "--days", "30"])

    assert created["kwargs"] == {"db_config": "sqlite:///other.db"}
    assert json.loads(capsys.readouterr().out) == {"unit": "tola", "days": 30, "data": []}


def test_tick_command(fake_rates, make_source, capsys: pytest.CaptureFixture[str]) -> None:
    created = fake_rates(make_source(_READING))

    assert cli.main(["tick", "--no-notify"]) == 0

    capsys.readouterr()
    history = created["rates"].history(7)
    assert [entry["date"] for entry in history["data"]] == ["2081-01-01"]


def test_tick_command_reports_fetch_errors(fake_rates, make_source, capsys: pytest.CaptureFixture[str]) -> None:
    fake_rates(make_source(UpstreamUnavailable("down")))

    assert cli.main(["tick"]) == 1
    assert json.loads(capsys.readouterr().out)["status"] == "error"
