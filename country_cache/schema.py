from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, RootModel


class CountryResponseSchema(BaseModel):
    id: int
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int
    currency_code: Optional[str] = None
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None
    flag_url: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StatusSchema(BaseModel):
    total_countries: int
    last_refreshed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RefreshResponseSchema(BaseModel):
    message: str
    total_countries: int
    last_refreshed_at: datetime


class MessageSchema(BaseModel):
    message: str


# Remote source payloads


class Currency(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class CountryApiItem(BaseModel):
    name: str = Field(..., min_length=1)
    population: int = Field(..., ge=0)
    capital: Optional[str] = None
    region: Optional[str] = None
    currencies: Optional[list[Currency]] = None
    flag: Optional[str] = None


class CountryApiResponse(RootModel[list[CountryApiItem]]):
    pass


class CurrencyApiResponse(BaseModel):
    # provider metadata is accepted but only `rates` is used
    result: Optional[str] = None
    provider: Optional[str] = None
    time_last_update_utc: Optional[str] = None
    base_code: Optional[str] = None
    rates: dict[str, float]


# Pipeline output and store projections


class EnrichedCountry(BaseModel):
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int
    flag_url: Optional[str] = None
    currency_code: Optional[str] = None
    exchange_rate: Optional[float] = None
    estimated_gdp: Optional[float] = None


class TopCountry(BaseModel):
    name: str
    currency_code: Optional[str] = None
    estimated_gdp: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)
