import os
import random
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from country_cache.error import NotFoundError, RenderError
from country_cache.fetchers import DataFetcher
from country_cache.log import setup_logger
from country_cache.pipeline import enrich_countries
from country_cache.renderer import IMAGE_FILE_NAME, generate_summary_image, get_image_filepath
from country_cache.store import CountryStore

# Set up logger
logger = setup_logger(__name__, "service.log")

TOP_N = 5


class Service():
    def __init__(self, db: AsyncSession, fetcher: Optional[DataFetcher] = None,
                 rng: Optional[random.Random] = None):
        self.store = CountryStore(db)
        self.fetcher = fetcher or DataFetcher()
        self.rng = rng or random.SystemRandom()

    async def refresh(self):
        logger.info("Starting country refresh.")
        countries, rates = await self.fetcher.fetch_all()
        enriched = enrich_countries(countries, rates, self.rng)

        # one timestamp for the whole batch
        refreshed_at = datetime.now(timezone.utc)
        await self.store.upsert_batch(enriched, refreshed_at)

        total_countries, last_refreshed_at = await self.store.aggregate_status()
        top = await self.store.top_by_gdp(TOP_N)
        try:
            generate_summary_image(
                total_countries=total_countries,
                top_countries=top,
                last_refreshed=last_refreshed_at or refreshed_at,
            )
        except OSError as e:
            # rows are already committed at this point
            logger.error(f"Error generating summary image: {e}")
            raise RenderError(f"Could not write summary image: {e}") from e
        logger.info(f"Refresh finished: {len(enriched)} countries at {refreshed_at.isoformat()}")
        return {
            "message": "Countries store updated successfully",
            "total_countries": len(enriched),
            "last_refreshed_at": refreshed_at,
        }

    async def filter_search(self, region: Optional[str] = None,
                            currency: Optional[str] = None,
                            sort: Optional[str] = None):
        return await self.store.query(region=region, currency=currency, sort=sort)

    async def status(self):
        logger.info("Fetching application status.")
        total_countries, last_refreshed_at = await self.store.aggregate_status()
        logger.info(f"Status fetched: total_countries={total_countries}, last_refreshed_at={last_refreshed_at}")
        return {
            "total_countries": total_countries,
            "last_refreshed_at": last_refreshed_at,
        }

    async def fetch_by_name(self, name: str):
        logger.info(f"Fetching country by name: {name}")
        country = await self.store.get_by_name(name)
        if country is None:
            logger.info(f"Country not found: {name}")
            raise NotFoundError("Country not found")
        return country

    async def delete_country(self, name: str):
        logger.info(f"Attempting to delete country: {name}")
        if not await self.store.delete_by_name(name):
            raise NotFoundError("Country not found")
        logger.info(f"Successfully deleted country: {name}")
        return {"message": "Country deleted successfully"}

    async def serve_file(self):
        file_path = get_image_filepath()
        logger.info(f"file path: {file_path}")
        if not os.path.exists(file_path):
            raise NotFoundError("Summary image not found")
        return {
            "file_path": file_path,
            "file_name": IMAGE_FILE_NAME,
        }
