import random
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from country_cache.config import config
from country_cache.db import Database, get_session
from country_cache.error import register_error_handler
from country_cache.fetchers import DataFetcher
from country_cache.log import setup_logger
from country_cache.schema import (
    CountryResponseSchema,
    MessageSchema,
    RefreshResponseSchema,
    StatusSchema,
)
from country_cache.service import Service

logger = setup_logger(__name__, "app.log")


@asynccontextmanager
async def life_span(app: FastAPI):
    # Startup
    database = Database(config.DATABASE_URL)
    try:
        await database.init()
    except Exception as e:
        logger.error(f"Error during database initialization: {str(e)}")
        raise
    app.state.database = database
    logger.info("tables created")

    yield  # Application is running

    # Shutdown
    await database.dispose()
    logger.info("server is ending.....")


app = FastAPI(lifespan=life_span)

# register errors
register_error_handler(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


def get_fetcher() -> DataFetcher:
    return DataFetcher()


def get_rng() -> random.Random:
    return random.SystemRandom()


def get_service(db: AsyncSession = Depends(get_session),
                fetcher: DataFetcher = Depends(get_fetcher),
                rng: random.Random = Depends(get_rng)):
    return Service(db=db, fetcher=fetcher, rng=rng)


@app.post("/countries/refresh", status_code=200)
# Fetch all countries and exchange rates, then cache them in the database
async def refresh_countries(service: Service = Depends(get_service)):
    data = await service.refresh()
    return RefreshResponseSchema(**data).model_dump(mode="json")


# IMPORTANT: /countries and /countries/image MUST come BEFORE /countries/{name}

@app.get("/countries")
# Get all countries from the DB (support filters and sorting) - ?region=Africa | ?currency=NGN | ?sort=gdp_desc
async def get_countries_filter(
    service: Service = Depends(get_service),
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None):

    countries = await service.filter_search(
        region=region,
        currency=currency,
        sort=sort
    )
    return [CountryResponseSchema.model_validate(c).model_dump(mode="json") for c in countries]


@app.get("/countries/image")
#   serve summary image
async def country_image(service: Service = Depends(get_service)):
    image = await service.serve_file()
    file_path = image["file_path"]
    file_name = image["file_name"]
    return FileResponse(file_path, media_type="image/png", filename=file_name)


@app.get("/countries/{name}")
# Get one country by name
async def get_country(name: str, service: Service = Depends(get_service)):
    data = await service.fetch_by_name(name)
    validated_data = CountryResponseSchema.model_validate(data)
    return validated_data.model_dump(mode="json")


@app.delete("/countries/{name}")
# Delete a country record
async def delete_country(name: str, service: Service = Depends(get_service)):
    data = await service.delete_country(name)
    return MessageSchema(**data).model_dump()


@app.get("/status")
#  Show total countries and last refresh timestamp
async def status(service: Service = Depends(get_service)):
    data = await service.status()
    return StatusSchema(**data).model_dump(mode="json")


def run():
    uvicorn.run("country_cache.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
