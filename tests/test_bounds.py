import pytest

from baliza.domain import Coordinates, InvalidCoordinates
from baliza.resolution.bounds import (
    BoundsValidator,
    CountryBounds,
    Severity,
    ViolationKind,
)
from baliza.resolution.geoutils import haversine_distance_km

ENGLAND = CountryBounds(min_lat=50.0, max_lat=55.8, min_lon=-6.0, max_lon=2.0)
ANFIELD = Coordinates(longitude=-2.9609, latitude=53.4308)


@pytest.mark.parametrize(
    "lon, lat, expected",
    [
        (-2.9609, 53.4308, True),
        (-6.0, 50.0, True),
        (2.0, 55.8, True),
        (-6.01, 53.0, False),
        (2.01, 53.0, False),
        (-1.0, 49.99, False),
        (-1.0, 55.81, False),
        (-67.4, 46.9, False),
    ],
)
def test_is_valid_inside_country_box(lon, lat, expected):
    validator = BoundsValidator({"England": ENGLAND}, {})

    assert validator.is_valid(Coordinates(longitude=lon, latitude=lat), "England") is expected


def test_unknown_country_is_not_rejected():
    validator = BoundsValidator()

    assert validator.is_valid(Coordinates(longitude=139.69, latitude=35.68), "Japan")
    assert validator.is_valid(Coordinates(longitude=139.69, latitude=35.68), None)
    assert not validator.knows_country("Japan")
    assert validator.knows_country("England")


def test_world_range_is_checked_before_country():
    validator = BoundsValidator()

    assert not validator.is_valid(Coordinates(longitude=200.0, latitude=10.0), "Japan")


def test_is_near_city_uses_haversine_radius():
    validator = BoundsValidator()

    assert validator.is_near_city(ANFIELD, "Liverpool")
    assert not validator.is_near_city(ANFIELD, "London")
    assert validator.is_near_city(ANFIELD, "London", max_distance_km=400)
    assert validator.is_near_city(ANFIELD, "Springfield")


def test_check_reports_severities_separately():
    validator = BoundsValidator()
    # Em Londres, mas registrado como estádio de Manchester.
    london = Coordinates(longitude=-0.1278, latitude=51.5074)

    violations = validator.check(london, "England", "Manchester")

    assert [(v.kind, v.severity) for v in violations] == [
        (ViolationKind.CITY_DISTANCE, Severity.MEDIUM)
    ]

    both = validator.check(Coordinates(longitude=-67.4, latitude=46.9), "England", "Liverpool")
    assert [(v.kind, v.severity) for v in both] == [
        (ViolationKind.COUNTRY_BOUNDS, Severity.HIGH),
        (ViolationKind.CITY_DISTANCE, Severity.MEDIUM),
    ]


def test_ensure_valid_raises_invalid_coordinates():
    validator = BoundsValidator()

    assert validator.ensure_valid(ANFIELD, "England") is ANFIELD
    with pytest.raises(InvalidCoordinates) as excinfo:
        validator.ensure_valid(Coordinates(longitude=-67.4, latitude=46.9), "England")
    assert excinfo.value.violations[0].kind is ViolationKind.COUNTRY_BOUNDS
    with pytest.raises(InvalidCoordinates):
        validator.ensure_valid(None, "England")


def test_haversine_known_distance():
    london = Coordinates(longitude=-0.1278, latitude=51.5074)
    paris = Coordinates(longitude=2.3522, latitude=48.8566)

    assert haversine_distance_km(london, paris) == pytest.approx(343.5, abs=1.0)
    assert haversine_distance_km(london, london) == 0.0
