"""Mock weather/location/time provider served over HTTP with an OpenAPI document."""
