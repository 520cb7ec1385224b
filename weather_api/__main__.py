"""Run the mock provider: python -m weather_api"""
import logging
import os

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

HOST = os.getenv("WEATHER_API_HOST", "127.0.0.1")
PORT = int(os.getenv("WEATHER_API_PORT", "5080"))

if __name__ == "__main__":
    logger.info(f"OpenAPI document: http://{HOST}:{PORT}/openapi.json")
    uvicorn.run("weather_api.main:app", host=HOST, port=PORT, log_level="info")
