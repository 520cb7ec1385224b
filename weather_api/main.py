"""Mock weather/location/time API — a demo tool provider for the agent.

FastAPI serves the OpenAPI document at /openapi.json; every route sets an
explicit operation_id, which becomes the tool name on import.
"""
import random
import zlib
from datetime import datetime, timedelta, timezone
from typing import List

from fastapi import FastAPI, Query
from pydantic import BaseModel

app = FastAPI(
    title="Weather Agent API",
    version="v1",
    description="Unified API providing weather, location, and time information",
)

CONDITIONS = ["Sunny", "Cloudy", "Rainy", "Partly Cloudy", "Clear", "Overcast"]
DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

# city -> (country, region, lat, lon, timezone, utc offset hours, population, elevation)
_CITIES = {
    "london": ("United Kingdom", "England", 51.5074, -0.1278, "Europe/London", 0, 9000000, 11),
    "paris": ("France", "Île-de-France", 48.8566, 2.3522, "Europe/Paris", 1, 2200000, 35),
    "tokyo": ("Japan", "Kanto", 35.6762, 139.6503, "Asia/Tokyo", 9, 14000000, 40),
    "new york": ("United States", "New York", 40.7128, -74.0060, "America/New_York", -5, 8300000, 10),
    "sydney": ("Australia", "New South Wales", -33.8688, 151.2093, "Australia/Sydney", 10, 5300000, 58),
    "singapore": ("Singapore", "Central", 1.3521, 103.8198, "Asia/Singapore", 8, 5900000, 15),
}
_UNKNOWN_CITY = ("Unknown", "Unknown", 0.0, 0.0, "UTC", 0, 0, 0)


class Wind(BaseModel):
    speed: float
    speed_unit: str
    direction: str


class WeatherResponse(BaseModel):
    city: str
    temperature: float
    temperature_unit: str
    condition: str
    humidity: int
    wind: Wind
    last_updated: str


class TemperatureResponse(BaseModel):
    city: str
    celsius: float
    fahrenheit: float
    feels_like: str


class DailyForecast(BaseModel):
    date: str
    high_temp: float
    low_temp: float
    condition: str
    chance_of_rain: int


class ForecastResponse(BaseModel):
    city: str
    days: int
    forecast: List[DailyForecast]


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class LocationResponse(BaseModel):
    city: str
    country: str
    region: str
    coordinates: Coordinates
    timezone: str
    population: int
    elevation: float


class TimezoneResponse(BaseModel):
    city: str
    timezone: str
    utc_offset: str


class DistanceRequest(BaseModel):
    from_city: str
    to_city: str


class DistanceResponse(BaseModel):
    from_city: str
    to_city: str
    kilometers: float
    miles: float


def _rng(seed: str) -> random.Random:
    """Deterministic per-input generator (str hash is salted per process)."""
    return random.Random(zlib.crc32(seed.lower().encode("utf-8")))


def _city(city: str) -> tuple:
    return _CITIES.get(city.strip().lower(), _UNKNOWN_CITY)


def _offset(hours: int) -> str:
    sign = "+" if hours >= 0 else "-"
    return f"{sign}{abs(hours):02d}:00"


@app.get("/weather/{city}", operation_id="GetWeather", response_model=WeatherResponse,
         summary="Get current weather for a city")
async def get_weather(city: str):
    rng = _rng(city)
    return WeatherResponse(
        city=city,
        temperature=round(15 + rng.random() * 20, 1),
        temperature_unit="Celsius",
        condition=rng.choice(CONDITIONS),
        humidity=40 + rng.randrange(50),
        wind=Wind(speed=round(5 + rng.random() * 20, 1), speed_unit="km/h", direction=rng.choice(DIRECTIONS)),
        last_updated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )


@app.get("/weather/temperature/{city}", operation_id="GetTemperature", response_model=TemperatureResponse,
         summary="Get temperature for a city")
async def get_temperature(city: str):
    rng = _rng(city)
    celsius = round(15 + rng.random() * 20, 1)
    return TemperatureResponse(
        city=city,
        celsius=celsius,
        fahrenheit=round(celsius * 9 / 5 + 32, 1),
        feels_like=f"{round(celsius + rng.random() * 5 - 2.5, 1)}°C",
    )


@app.get("/weather/forecast/{city}", operation_id="GetForecast", response_model=ForecastResponse,
         summary="Get weather forecast for 1-10 days")
async def get_forecast(city: str, days: int = Query(5, description="number of days (1-10)")):
    rng = _rng(city)
    today = datetime.now(timezone.utc)
    forecast = [
        DailyForecast(
            date=(today + timedelta(days=i)).strftime("%Y-%m-%d"),
            high_temp=round(20 + rng.random() * 15, 1),
            low_temp=round(10 + rng.random() * 10, 1),
            condition=rng.choice(CONDITIONS[:4]),
            chance_of_rain=rng.randint(0, 100),
        )
        for i in range(max(0, min(days, 10)))
    ]
    return ForecastResponse(city=city, days=days, forecast=forecast)


@app.get("/location/{city}", operation_id="GetLocation", response_model=LocationResponse,
         summary="Get location information for a city")
async def get_location(city: str):
    country, region, lat, lon, tz, _, population, elevation = _city(city)
    return LocationResponse(
        city=city,
        country=country,
        region=region,
        coordinates=Coordinates(latitude=lat, longitude=lon),
        timezone=tz,
        population=population,
        elevation=elevation,
    )


@app.get("/location/timezone/{city}", operation_id="GetTimezone", response_model=TimezoneResponse,
         summary="Get timezone information for a city")
async def get_timezone(city: str):
    data = _city(city)
    return TimezoneResponse(city=city, timezone=data[4], utc_offset=_offset(data[5]))


@app.post("/location/distance", operation_id="CalculateDistance", response_model=DistanceResponse,
          summary="Calculate distance between two cities")
async def calculate_distance(request: DistanceRequest):
    rng = _rng(request.from_city + request.to_city)
    km = round(500 + rng.random() * 5000, 2)
    return DistanceResponse(
        from_city=request.from_city,
        to_city=request.to_city,
        kilometers=km,
        miles=round(km * 0.621371, 2),
    )


@app.get("/time/current", operation_id="GetCurrentTime", summary="Get current UTC time")
async def get_current_time():
    now = datetime.now(timezone.utc)
    return {
        "utc": now.strftime("%Y-%m-%d %H:%M:%S"),
        "iso8601": now.isoformat(),
        "unix_timestamp": int(now.timestamp()),
        "day_of_week": now.strftime("%A"),
    }


@app.get("/time/city/{city}", operation_id="GetTimeForCity", summary="Get current local time for a city")
async def get_time_for_city(city: str):
    data = _city(city)
    local = datetime.now(timezone.utc) + timedelta(hours=data[5])
    return {
        "city": city,
        "local_time": local.strftime("%Y-%m-%d %H:%M:%S"),
        "timezone": data[4],
        "utc_offset": _offset(data[5]),
        "formatted": local.strftime("%A, %B %d, %Y %I:%M:%S %p"),
    }


@app.get("/time/unix", operation_id="GetUnixTimestamp", summary="Get Unix timestamp")
async def get_unix_timestamp():
    now = datetime.now(timezone.utc)
    return {
        "seconds": int(now.timestamp()),
        "milliseconds": int(now.timestamp() * 1000),
        "iso8601": now.isoformat(),
    }


@app.get("/health", include_in_schema=False)
async def health():
    return {"ok": True}
