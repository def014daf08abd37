from unittest.mock import MagicMock

import pytest

from baliza.infrastructure.database import DEFAULT_MONGO_URI, MongoClientFactory, MongoSettings


def test_settings_from_env_defaults(monkeypatch):
    for name in (
        "MONGO_URI",
        "MONGO_DATABASE",
        "BALIZA_VENUES_COLLECTION",
        "MONGO_SERVER_SELECTION_TIMEOUT_MS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = MongoSettings.from_env()

    assert settings.uri == DEFAULT_MONGO_URI
    assert settings.database == "baliza"
    assert settings.venues_collection == "venues"
    assert settings.server_selection_timeout_ms == 5000


def test_settings_from_env_overrides(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    monkeypatch.setenv("MONGO_DATABASE", "football")
    monkeypatch.setenv("BALIZA_VENUES_COLLECTION", "stadiums")
    monkeypatch.setenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "250")

    settings = MongoSettings.from_env()

    assert settings == MongoSettings(
        uri="mongodb://db:27017",
        database="football",
        venues_collection="stadiums",
        server_selection_timeout_ms=250,
    )


def test_settings_reject_invalid_timeout(monkeypatch):
    monkeypatch.setenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "soon")

    with pytest.raises(RuntimeError):
        MongoSettings.from_env()


def test_factory_reuses_client_and_resets_on_close(monkeypatch):
    created = []

    def fake_client(*args, **kwargs):
        client = MagicMock()
        created.append((args, kwargs, client))
        return client

    monkeypatch.setattr("baliza.infrastructure.database.MongoClient", fake_client)
    factory = MongoClientFactory(MongoSettings(uri="mongodb://db:27017"))

    first = factory.create_client()
    assert factory.create_client() is first
    factory.get_venues_collection()
    factory.close()
    factory.create_client()

    assert len(created) == 2
    args, kwargs, _ = created[0]
    assert args == ("mongodb://db:27017",)
    assert kwargs["tz_aware"] is True
    first.close.assert_called_once_with()
