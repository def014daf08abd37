import pytest

from baliza.resolution.normalization import normalize_venue_name, same_token


@pytest.mark.parametrize(
    "raw, expected",
    [
        (" The Old Trafford ", "old trafford"),
        ("Old   Trafford", "old trafford"),
        ("St. James' Park", "st james park"),
        ("Wembley @ London", "wembley"),
        ('The "Den"', "den"),
        ("\tTHE\nValley", "valley"),
        ("Theatre of Dreams", "theatre of dreams"),
        (None, ""),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_venue_name_applies_rules(raw, expected):
    assert normalize_venue_name(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "'The Den",
        "St . Mary's",
        "The The Stadium",
        " .the  arena ",
        "Stade @ the city",
        "\"\"the\"\" ground",
        "a , , b",
    ],
)
def test_normalize_venue_name_is_idempotent(raw):
    once = normalize_venue_name(raw)
    assert normalize_venue_name(once) == once


def test_same_token_compares_normalized_forms():
    assert same_token("The Emirates Stadium", "emirates stadium")
    assert not same_token("Anfield", "Goodison Park")
    assert same_token(None, "")
