import threading

import pytest

from baliza.correction import CorrectionEngine, CorrectionJob
from baliza.domain import AuthFailure, Coordinates, VenueRecord
from baliza.domain.ports import GeocodingProvider
from baliza.infrastructure.repositories import InMemoryVenueRepository
from baliza.resolution import BoundsValidator, GeocodeCache, RateLimitGate

CANADA = Coordinates(longitude=-67.4, latitude=46.9)
ANFIELD = Coordinates(longitude=-2.9609, latitude=53.4308)


class StaticProvider(GeocodingProvider):
    def __init__(self, payload=None, error=None, started=None, release=None) -> None:
        self.payload = payload or [{"lat": "53.4308", "lon": "-2.9609"}]
        self.error = error
        self.started = started
        self.release = release
        self.calls = 0

    def search(self, query, *, limit=1):
        self.calls += 1
        if self.started is not None:
            self.started.set()
            self.release.wait(5)
        if self.error is not None:
            raise self.error
        return self.payload


def _repository():
    return InMemoryVenueRepository(
        [
            VenueRecord(id="a", name="Anfield", city="Liverpool", country="England", coordinates=CANADA),
            VenueRecord(id="b", name="Anfield", city="Liverpool", country="England", coordinates=ANFIELD),
            VenueRecord(id="c", name="Goodison Park", city="Liverpool", country="England", coordinates=CANADA),
        ]
    )


def _job(repository, provider):
    cache = GeocodeCache(provider, RateLimitGate(0.0, sleep=lambda seconds: None))
    engine = CorrectionEngine(repository, cache, BoundsValidator(), manual_corrections={})
    return CorrectionJob(engine)


def test_run_reports_metrics_without_writing_in_dry_run():
    repository = _repository()

    result = _job(repository, StaticProvider()).run(dry_run=True, fix_duplicates=True)

    assert result.scanned == 3
    assert result.issues == 4
    assert result.corrected == 2
    assert result.deleted == 1
    assert result.dry_run
    assert repository.get("a").coordinates == CANADA
    assert len(repository) == 3
    assert set(result.to_summary()) == {
        "scanned",
        "corrected",
        "unresolved",
        "deleted",
        "elapsed_ms_total",
    }


def test_run_applies_corrections_and_merges():
    repository = _repository()

    result = _job(repository, StaticProvider()).run(fix_duplicates=True)

    assert result.corrected == 2
    assert result.errors == ()
    assert repository.get("c").coordinates == ANFIELD
    # Depois da correção os dois "Anfield" são válidos e apenas um sobrevive.
    assert result.deleted == 1
    assert len(repository) == 2


def test_background_job_can_be_cancelled_between_venues():
    started = threading.Event()
    release = threading.Event()
    provider = StaticProvider(started=started, release=release)
    job = _job(_repository(), provider)

    handle = job.start_background()
    assert started.wait(5)
    handle.cancel()
    release.set()
    result = handle.join(5)

    assert result is not None
    assert result.cancelled
    assert result.corrected == 1
    assert provider.calls == 1
    assert not handle.running


def test_background_job_surfaces_auth_failure():
    job = _job(_repository(), StaticProvider(error=AuthFailure("denied", status_code=403)))

    handle = job.start_background()

    with pytest.raises(AuthFailure):
        handle.join(5)
    assert isinstance(handle.error, AuthFailure)
