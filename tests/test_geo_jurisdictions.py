import pytest

from naepdash.geo.jurisdictions import LARGE_CITY_DISTRICTS, resolve_jurisdiction


@pytest.mark.parametrize(
    "name, expected",
    [
        ("los angeles unified school district", "XL"),
        ("chicago", "XC"),
        ("New York City Department of Education", "XN"),
        ("  CHICAGO  ", "XC"),
        ("Miami-Dade County Public Schools", "XI"),
        ("Jefferson County Public Schools", "XJ"),
        ("Shelby County Schools", "YA"),
    ],
)
def test_resolve_known_districts(name, expected):
    assert resolve_jurisdiction(name) == expected


@pytest.mark.parametrize("name", ["small town district", "", "   ", None])
def test_unknown_or_empty_names_do_not_resolve(name):
    assert resolve_jurisdiction(name) is None


def test_exact_match_is_preferred_over_containment():
    assert resolve_jurisdiction("baltimore city") == "XM"


def test_ambiguous_name_takes_first_key_in_table_order():
    # "chicago" sorts before "los angeles" in the table, so it wins.
    assert resolve_jurisdiction("los angeles and chicago consortium") == "XC"


def test_table_covers_all_large_city_districts():
    assert len(LARGE_CITY_DISTRICTS) == 27
    assert list(LARGE_CITY_DISTRICTS) == sorted(LARGE_CITY_DISTRICTS)
