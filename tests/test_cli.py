import json
from unittest.mock import MagicMock

from pymongo.errors import ServerSelectionTimeoutError
from rich.console import Console

from baliza.cli import main, parse_args
from baliza.container import build_container
from baliza.domain import AuthFailure, Coordinates, VenueRecord
from baliza.domain.ports import GeocodingProvider
from baliza.infrastructure.repositories import InMemoryVenueRepository
from baliza.resolution import RateLimitGate
from baliza.settings import GeocodingSettings

ANFIELD = Coordinates(longitude=-2.9609, latitude=53.4308)
CANADA = Coordinates(longitude=-67.4, latitude=46.9)


class FakeProvider(GeocodingProvider):
    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else [{"lat": "53.4308", "lon": "-2.9609"}]
        self.error = error
        self.closed = False

    def search(self, query, *, limit=1):
        if self.error is not None:
            raise self.error
        return self.payload

    def close(self):
        self.closed = True


def _container(venues=(), provider=None):
    return build_container(
        settings=GeocodingSettings(api_key="test-key"),
        repository=InMemoryVenueRepository(venues),
        provider=provider or FakeProvider(),
        manual_corrections={},
        geocode_overrides={},
        gate=RateLimitGate(0.0),
    )


def _broken_anfield():
    return [
        VenueRecord(id="a", name="Anfield", city="Liverpool", country="England", coordinates=CANADA),
        VenueRecord(id="b", name="Anfield", city="Liverpool", country="England", coordinates=ANFIELD),
    ]


def test_parse_args_defaults_to_dry_run():
    args = parse_args(["fix", "--with-duplicates"])

    assert args.command == "fix"
    assert args.apply is False
    assert args.with_duplicates is True
    assert args.metrics_file is None


def test_parse_args_accepts_log_level_on_subcommands():
    args = parse_args(["resolve", "Anfield", "--city", "Liverpool", "--log-level", "DEBUG"])

    assert args.name == "Anfield"
    assert args.city == "Liverpool"
    assert args.log_level == "DEBUG"


def test_resolve_prints_result_and_closes_container():
    provider = FakeProvider()
    container = _container(provider=provider)
    console = Console(record=True, width=200)

    exit_code = main(
        ["resolve", "Anfield", "--city", "Liverpool", "--country", "England"],
        container=container,
        console=console,
    )

    assert exit_code == 0
    output = console.export_text()
    assert '"state": "resolved"' in output
    assert '"created": true' in output
    assert provider.closed


def test_resolve_failure_returns_non_zero():
    container = _container(provider=FakeProvider(payload=[]))
    console = Console(record=True, width=200)

    assert main(["resolve", "Atlantis Arena"], container=container, console=console) == 1
    assert "geocode_failure" in console.export_text()


def test_scan_lists_issues():
    console = Console(record=True, width=200)

    exit_code = main(["scan"], container=_container(_broken_anfield()), console=console)

    assert exit_code == 0
    output = console.export_text()
    assert "2 local(is) verificados, 2 problema(s) em 1 local(is)." in output


def test_fix_dry_run_writes_metrics_without_touching_store(tmp_path):
    container = _container(_broken_anfield())
    metrics = tmp_path / "metrics.json"
    console = Console(record=True, width=200)

    exit_code = main(
        ["fix", "--with-duplicates", "--metrics-file", str(metrics)],
        container=container,
        console=console,
    )

    assert exit_code == 0
    summary = json.loads(metrics.read_text(encoding="utf-8"))
    assert summary["corrected"] == 1
    assert summary["deleted"] == 1
    assert container.repository.get("a").coordinates == CANADA
    assert "Simulação" in console.export_text()


def test_fix_one_applies_correction():
    container = _container(_broken_anfield())
    console = Console(record=True, width=200)

    exit_code = main(["fix-one", "a", "--apply"], container=container, console=console)

    assert exit_code == 0
    assert container.repository.get("a").coordinates == ANFIELD


def test_fix_one_reports_unknown_target():
    console = Console(record=True, width=200)

    exit_code = main(["fix-one", "ghost"], container=_container(), console=console)

    assert exit_code == 1
    assert "não encontrado" in console.export_text()


def test_dedupe_apply_deletes_invalid_member():
    container = _container(_broken_anfield())
    console = Console(record=True, width=200)

    exit_code = main(["dedupe", "--apply"], container=container, console=console)

    assert exit_code == 0
    assert container.repository.get("a") is None
    assert container.repository.get("b") is not None


def test_auth_failure_exits_with_code_two():
    container = _container(
        _broken_anfield(), provider=FakeProvider(error=AuthFailure("denied", status_code=401))
    )
    console = Console(record=True, width=200)

    exit_code = main(["fix-one", "a"], container=container, console=console)

    assert exit_code == 2
    assert "credenciais" in console.export_text()


class FakeFactory:
    def __init__(self, error=None):
        self.error = error
        self.settings = type("Settings", (), {"venues_collection": "venues"})()
        self.collection = MagicMock()
        self.closed = False

    def ping(self):
        if self.error is not None:
            raise self.error

    def get_venues_collection(self):
        return self.collection

    def close(self):
        self.closed = True


def test_ensure_indexes_creates_indexes(monkeypatch):
    factory = FakeFactory()
    monkeypatch.setattr("baliza.cli.MongoClientFactory", lambda: factory)
    console = Console(record=True, width=200)

    assert main(["ensure-indexes"], console=console) == 0
    assert factory.collection.create_index.call_count == 5
    assert factory.closed


def test_ensure_indexes_reports_unreachable_server(monkeypatch):
    factory = FakeFactory(error=ServerSelectionTimeoutError("no servers"))
    monkeypatch.setattr("baliza.cli.MongoClientFactory", lambda: factory)

    assert main(["ensure-indexes"], console=Console(record=True)) == 1
    assert factory.collection.create_index.call_count == 0
    assert factory.closed
