import random

import pytest

from country_cache.conftest import make_country
from country_cache.pipeline import compute_estimated_gdp, enrich_countries
from country_cache.schema import CountryApiItem

RATES = {"XYZ": 2.0, "NGN": 1500.0}


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__()
        self.value = value

    def random(self):
        return self.value


def test_output_keeps_length_and_order():
    countries = [
        make_country("Zeta", codes=("XYZ",)),
        make_country("Alpha", codes=()),
        make_country("Mid", codes=("ABC",)),
        make_country("Nigeria", codes=("NGN",)),
    ]
    enriched = enrich_countries(countries, RATES, random.Random(1))
    assert [c.name for c in enriched] == ["zeta", "alpha", "mid", "nigeria"]


def test_country_without_currency_has_zero_gdp():
    empty = make_country("Antarctica", codes=())
    absent = CountryApiItem(name="Nowhere", population=10)
    for enriched in enrich_countries([empty, absent], RATES, random.Random(1)):
        assert enriched.currency_code is None
        assert enriched.exchange_rate is None
        assert enriched.estimated_gdp == 0
        assert enriched.estimated_gdp is not None


def test_unknown_currency_code_has_unknown_gdp():
    [enriched] = enrich_countries([make_country("Atlantis", codes=("ZZZ",))], RATES, random.Random(1))
    assert enriched.currency_code == "ZZZ"
    assert enriched.exchange_rate is None
    assert enriched.estimated_gdp is None


def test_first_currency_wins():
    [enriched] = enrich_countries([make_country("Zimbabwe", codes=("NGN", "XYZ"))], RATES, random.Random(1))
    assert enriched.currency_code == "NGN"
    assert enriched.exchange_rate == 1500.0


def test_resolvable_currency_gdp_within_multiplier_bounds():
    population = 3_000_000
    countries = [make_country(f"C{i}", population=population) for i in range(50)]
    for enriched in enrich_countries(countries, RATES, random.Random(99)):
        assert enriched.exchange_rate == 2.0
        assert population * 1000 / 2.0 <= enriched.estimated_gdp < population * 2000 / 2.0


def test_copied_fields_and_lowercased_name():
    country = make_country("Wakanda", population=42, capital="Birnin Zana", region="Africa")
    [enriched] = enrich_countries([country], RATES, random.Random(1))
    assert enriched.name == "wakanda"
    assert enriched.capital == "Birnin Zana"
    assert enriched.region == "Africa"
    assert enriched.population == 42
    assert enriched.flag_url == "https://flags.example/wakanda.svg"


def test_gdp_varies_between_refreshes_but_rates_do_not():
    countries = [make_country("Wakanda", population=5_000_000)]
    first = enrich_countries(countries, RATES, random.Random(1))[0]
    second = enrich_countries(countries, RATES, random.Random(2))[0]
    assert first.currency_code == second.currency_code
    assert first.exchange_rate == second.exchange_rate
    assert first.estimated_gdp != second.estimated_gdp


def test_seeded_generator_is_reproducible():
    countries = [make_country("Wakanda"), make_country("Genovia")]
    first = enrich_countries(countries, RATES, random.Random(7))
    second = enrich_countries(countries, RATES, random.Random(7))
    assert first == second


@pytest.mark.parametrize(
    "draw, expected",
    [
        (0.0, 1000 * 10 / 4.0),
        (0.5, 1500 * 10 / 4.0),
    ],
)
def test_compute_estimated_gdp(draw, expected):
    assert compute_estimated_gdp(10, 4.0, FixedRandom(draw)) == pytest.approx(expected)


def test_multiplier_upper_bound_is_exclusive():
    gdp = compute_estimated_gdp(1, 1.0, FixedRandom(0.9999999))
    assert gdp < 2000
