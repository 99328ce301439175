"""
OpenWeatherMap client — forecast and current-conditions readings over ``httpx``.

API:   https://api.openweathermap.org/data/2.5/
Docs:  https://openweathermap.org/forecast5

Credential setup (.env, gitignored):
  TURFOPS_OWM_API_KEY=your_api_key

Endpoints (``units=imperial`` so temperatures arrive in °F and wind in mph):
  5-day / 3-hour forecast:
    GET /forecast?lat={lat}&lon={lon}&appid={key}&units=imperial
    → {"list": [{"dt": 1710057600, "main": {"temp": 58.1, "humidity": 82},
                 "wind": {"speed": 6.2}, "pop": 0.35}, ...]}
  Current conditions:
    GET /weather?lat={lat}&lon={lon}&appid={key}&units=imperial
    → {"dt": 1710054000, "main": {"temp": 55.0, "humidity": 71},
       "wind": {"speed": 4.1}}

Readings produced
-----------------
``fetch_forecast_readings()`` emits one ``forecast_temp`` and one
``forecast_rain_prob`` reading per forecast point, plus ``forecast_humidity``
when the point carries it, all stamped at the point's future instant.  ``fetch_current_readings()`` emits observed ``ambient_temp``,
``humidity`` and ``wind_speed`` readings stamped at the observation time.
Observed metrics are never stamped in the future, so they cannot trip the
engine's clock-skew check.

Every failure (transport, non-2xx status, unexpected payload) is raised as
``ProviderError`` so callers see one classified error type.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from turfops.config import OpenWeatherMapConfig
from turfops.engine.errors import ProviderError
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric

logger = logging.getLogger(__name__)

SOURCE = "openweathermap"


class OpenWeatherMapClient:
    """Client for the OpenWeatherMap 2.5 API.

    Usage::

        client = OpenWeatherMapClient.from_config(config.openweathermap)
        readings = client.fetch_forecast_readings()

    Args:
        api_key:   OpenWeatherMap API key.
        latitude:  Lawn latitude in degrees.
        longitude: Lawn longitude in degrees.
        base_url:  API root; overridable for tests.
        timeout:   Request timeout in seconds.
        client:    Optional pre-built ``httpx.Client`` (e.g. with a
                   ``MockTransport``).  When omitted one is created per call.
    """

    def __init__(
        self,
        api_key: str,
        latitude: float,
        longitude: float,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ValueError("OpenWeatherMap api_key must be set (TURFOPS_OWM_API_KEY).")
        self.api_key = api_key
        self.latitude = latitude
        self.longitude = longitude
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: OpenWeatherMapConfig,
        client: Optional[httpx.Client] = None,
    ) -> "OpenWeatherMapClient":
        """Build a client from the ``[openweathermap]`` config section.

        Raises:
            ValueError: If the API key or coordinates are missing.
        """
        if config.latitude is None or config.longitude is None:
            raise ValueError("openweathermap.latitude and longitude must be set.")
        return cls(
            api_key=config.api_key or "",
            latitude=config.latitude,
            longitude=config.longitude,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            client=client,
        )

    # ── Public API ─────────────────────────────────────────────────────────────

    def fetch_forecast_readings(self) -> list[Reading]:
        """Fetch the 5-day / 3-hour forecast as ``forecast_*`` readings.

        Raises:
            ProviderError: On transport, HTTP status, or payload errors.
        """
        payload = self._get("forecast")
        try:
            points = payload["list"]
            readings: list[Reading] = []
            for point in points:
                ts = _instant(point["dt"])
                readings.append(Reading(
                    metric=Metric.FORECAST_TEMP,
                    timestamp=ts,
                    value=float(point["main"]["temp"]),
                    source=SOURCE,
                ))
                readings.append(Reading(
                    metric=Metric.FORECAST_RAIN_PROB,
                    timestamp=ts,
                    value=float(point.get("pop", 0.0)),
                    source=SOURCE,
                ))
                humidity = point["main"].get("humidity")
                if humidity is not None:
                    readings.append(Reading(
                        metric=Metric.FORECAST_HUMIDITY,
                        timestamp=ts,
                        value=float(humidity),
                        source=SOURCE,
                    ))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(SOURCE, f"unexpected forecast payload: {exc}") from exc

        logger.info("Fetched %d forecast points from OpenWeatherMap", len(points))
        return readings

    def fetch_current_readings(self) -> list[Reading]:
        """Fetch current conditions as observed ``ambient_temp`` / ``humidity`` /
        ``wind_speed`` readings.

        Raises:
            ProviderError: On transport, HTTP status, or payload errors.
        """
        payload = self._get("weather")
        try:
            ts = _instant(payload["dt"])
            readings = [
                Reading(metric=Metric.AMBIENT_TEMP, timestamp=ts,
                        value=float(payload["main"]["temp"]), source=SOURCE),
                Reading(metric=Metric.HUMIDITY, timestamp=ts,
                        value=float(payload["main"]["humidity"]), source=SOURCE),
                Reading(metric=Metric.WIND_SPEED, timestamp=ts,
                        value=float(payload["wind"]["speed"]), source=SOURCE),
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(SOURCE, f"unexpected current-conditions payload: {exc}") from exc

        logger.info("Fetched current conditions from OpenWeatherMap at %s", ts.isoformat())
        return readings

    # ── Internal ───────────────────────────────────────────────────────────────

    def _get(self, endpoint: str) -> dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        params = {
            "lat": self.latitude,
            "lon": self.longitude,
            "appid": self.api_key,
            "units": "imperial",
        }
        try:
            if self._client is not None:
                resp = self._client.get(url, params=params, timeout=self.timeout)
            else:
                resp = httpx.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                SOURCE, f"HTTP {exc.response.status_code} from /{endpoint}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(SOURCE, f"request to /{endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(SOURCE, f"/{endpoint} returned invalid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise ProviderError(SOURCE, f"/{endpoint} returned {type(payload).__name__}, expected object")
        return payload


def _instant(epoch_seconds: Any) -> datetime:
    return datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc)
