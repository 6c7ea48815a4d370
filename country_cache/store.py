from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from country_cache.db import Country
from country_cache.error import StoreError
from country_cache.log import setup_logger
from country_cache.schema import EnrichedCountry, TopCountry

logger = setup_logger(__name__, "store.log")

# columns overwritten when a refresh meets an existing name
UPSERT_COLUMNS = (
    "capital",
    "region",
    "population",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "flag_url",
    "last_refreshed_at",
)

_gdp_nulls_last = Country.estimated_gdp.is_(None)

SORT_ORDERS = {
    "gdp_desc": (_gdp_nulls_last, Country.estimated_gdp.desc()),
    "gdp_asc": (Country.estimated_gdp.is_not(None), Country.estimated_gdp.asc()),
    "name_asc": (Country.name.asc(),),
    "name_desc": (Country.name.desc(),),
    "pop_asc": (Country.population.asc(),),
    "pop_desc": (Country.population.desc(),),
}

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class CountryStore:
    """Keyed table of enriched countries; the key is the lowercased name."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.bind.dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise StoreError(f"Upsert is not supported on the '{dialect}' dialect")

    async def upsert_batch(self, countries: list[EnrichedCountry], refreshed_at: datetime) -> int:
        logger.info(f"Upserting {len(countries)} countries with last_refreshed_at={refreshed_at}")
        insert = self._insert()
        try:
            for country in countries:
                stmt = insert(Country).values(
                    **country.model_dump(),
                    last_refreshed_at=refreshed_at,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Country.name],
                    set_={column: stmt.excluded[column] for column in UPSERT_COLUMNS},
                )
                await self.db.execute(stmt)
                logger.debug(f"Upserted {country.name}")
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error during batch upsert: {e}")
            raise StoreError(f"Could not upsert countries: {e}") from e
        logger.info("Batch upsert committed.")
        return len(countries)

    async def query(
        self,
        region: Optional[str] = None,
        currency: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> list[Country]:
        logger.info(f"Querying countries with region='{region}', currency='{currency}', sort='{sort}'")
        stmt = select(Country)
        if region:
            stmt = stmt.where(Country.region == region)
        if currency:
            stmt = stmt.where(Country.currency_code == currency)
        if sort in SORT_ORDERS:
            stmt = stmt.order_by(*SORT_ORDERS[sort])
        else:
            if sort:
                logger.debug(f"Ignoring unrecognised sort key: {sort}")
            stmt = stmt.order_by(Country.id)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error during country query: {e}")
            raise StoreError(f"Could not query countries: {e}") from e
        countries = list(result.scalars().all())
        logger.info(f"Found {len(countries)} countries matching criteria.")
        return countries

    async def get_by_name(self, name: str) -> Optional[Country]:
        try:
            result = await self.db.execute(
                select(Country).where(Country.name == name.lower())
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching country '{name}': {e}")
            raise StoreError(f"Could not fetch country: {e}") from e
        return result.scalar_one_or_none()

    async def delete_by_name(self, name: str) -> bool:
        try:
            result = await self.db.execute(
                delete(Country).where(Country.name == name.lower())
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error deleting country '{name}': {e}")
            raise StoreError(f"Could not delete country: {e}") from e
        deleted = result.rowcount > 0
        logger.info(f"Delete '{name}': removed={deleted}")
        return deleted

    async def aggregate_status(self) -> tuple[int, Optional[datetime]]:
        total = select(sa.func.count()).select_from(Country).scalar_subquery()
        last = select(sa.func.max(Country.last_refreshed_at)).scalar_subquery()
        try:
            result = await self.db.execute(select(total.label("total"), last.label("last")))
        except SQLAlchemyError as e:
            logger.error(f"Error fetching status: {e}")
            raise StoreError(f"Could not read status: {e}") from e
        row = result.one()
        return row.total or 0, row.last

    async def top_by_gdp(self, limit: int = 5) -> list[TopCountry]:
        stmt = (
            select(Country.name, Country.currency_code, Country.estimated_gdp)
            .order_by(*SORT_ORDERS["gdp_desc"])
            .limit(limit)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching top countries: {e}")
            raise StoreError(f"Could not read top countries: {e}") from e
        return [TopCountry.model_validate(row) for row in result.all()]
