"""
Joins the country directory with the exchange-rate table.

``estimated_gdp`` is a synthetic proxy: population times a random multiplier
in ``[1000, 2000)`` divided by the USD rate. The multiplier is drawn per
country on every refresh, so two refreshes over identical input produce
different GDP figures. Callers pass the ``random.Random`` to draw from.
"""
import random
from typing import Optional

from country_cache.log import setup_logger
from country_cache.schema import CountryApiItem, EnrichedCountry

logger = setup_logger(__name__, "service.log")

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000


def compute_estimated_gdp(population: int, exchange_rate: float, rng: random.Random) -> float:
    multiplier = MULTIPLIER_MIN + rng.random() * (MULTIPLIER_MAX - MULTIPLIER_MIN)
    return population * multiplier / exchange_rate


def _first_currency_code(country: CountryApiItem) -> Optional[str]:
    if not country.currencies:
        return None
    return country.currencies[0].code


def enrich_country(
    country: CountryApiItem, rates: dict[str, float], rng: random.Random
) -> EnrichedCountry:
    currency_code = _first_currency_code(country)
    exchange_rate = None
    if currency_code is None:
        # no currency at all: GDP is zero, not unknown
        estimated_gdp = 0
    elif rates.get(currency_code):
        exchange_rate = rates[currency_code]
        estimated_gdp = compute_estimated_gdp(country.population, exchange_rate, rng)
    else:
        logger.debug(f"No exchange rate for {currency_code} ({country.name})")
        estimated_gdp = None

    return EnrichedCountry(
        name=country.name.lower(),
        capital=country.capital,
        region=country.region,
        population=country.population,
        flag_url=country.flag,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
    )


def enrich_countries(
    countries: list[CountryApiItem], rates: dict[str, float], rng: random.Random
) -> list[EnrichedCountry]:
    enriched = [enrich_country(country, rates, rng) for country in countries]
    logger.info(f"Enriched {len(enriched)} countries against {len(rates)} rates.")
    return enriched
