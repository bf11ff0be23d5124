"""Weather polling and classification."""

from karttiming.weather.classify import attribute_weather
from karttiming.weather.client import WeatherClient
from karttiming.weather.poller import WeatherPoller

__all__ = ["WeatherClient", "WeatherPoller", "attribute_weather"]
