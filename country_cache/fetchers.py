import asyncio
from typing import Optional

import aiohttp
from pydantic import ValidationError

from country_cache.config import config
from country_cache.error import UpstreamFetchError
from country_cache.log import setup_logger
from country_cache.schema import CountryApiItem, CountryApiResponse, CurrencyApiResponse

logger = setup_logger(__name__, "service.log")

COUNTRIES_SOURCE = "Restcountries API"
RATES_SOURCE = "Open ER API"


class DataFetcher:
    """Reads the country directory and the USD exchange-rate table."""

    def __init__(
        self,
        countries_url: Optional[str] = None,
        rates_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.countries_url = countries_url or config.COUNTRIES_API_URL
        self.rates_url = rates_url or config.EXCHANGE_RATES_API_URL
        self.timeout = aiohttp.ClientTimeout(total=timeout or config.HTTP_TIMEOUT)

    async def _get_json(self, session: aiohttp.ClientSession, url: str, source: str):
        logger.info(f"Fetching {source} data from {url}")
        try:
            async with session.get(url) as response:
                response.raise_for_status()  # Raise an exception for bad status codes
                data = await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            logger.error(f"{source} answered {e.status}: {e.message}")
            raise UpstreamFetchError(source, f"Could not fetch data from {source}: HTTP {e.status}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error fetching {source} data: {e!r}")
            raise UpstreamFetchError(source, f"Could not fetch data from {source}: {e!r}") from e
        logger.info(f"Successfully fetched {source} data.")
        return data

    async def fetch_countries(self, session: aiohttp.ClientSession) -> list[CountryApiItem]:
        data = await self._get_json(session, self.countries_url, COUNTRIES_SOURCE)
        try:
            return CountryApiResponse.model_validate(data).root
        except ValidationError as e:
            logger.error(f"Invalid {COUNTRIES_SOURCE} payload: {e}")
            raise UpstreamFetchError(COUNTRIES_SOURCE, f"Invalid payload from {COUNTRIES_SOURCE}") from e

    async def fetch_rates(self, session: aiohttp.ClientSession) -> dict[str, float]:
        data = await self._get_json(session, self.rates_url, RATES_SOURCE)
        try:
            return CurrencyApiResponse.model_validate(data).rates
        except ValidationError as e:
            logger.error(f"Invalid {RATES_SOURCE} payload: {e}")
            raise UpstreamFetchError(RATES_SOURCE, f"Invalid payload from {RATES_SOURCE}") from e

    async def fetch_all(self) -> tuple[list[CountryApiItem], dict[str, float]]:
        """
        Fetch both sources concurrently.

        The first failure is raised as soon as it happens; the other request
        is cancelled rather than awaited.
        """
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            tasks = [
                asyncio.ensure_future(self.fetch_countries(session)),
                asyncio.ensure_future(self.fetch_rates(session)),
            ]
            try:
                countries, rates = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                # let cancelled tasks settle before the session closes
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        logger.info(f"Fetched {len(countries)} countries and {len(rates)} rates.")
        return countries, rates
