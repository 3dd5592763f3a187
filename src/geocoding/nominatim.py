"""
Geocoding Module
--------------
Handles reverse geocoding operations to convert geographic coordinates to place names.
Uses OpenStreetMap's Nominatim API with a time-bounded cache keyed by coordinates
rounded to one decimal degree (roughly 11 km buckets).
"""
import requests
import time
import logging
from typing import Optional, Dict, Any, Tuple
from threading import Lock

from src.config import NOMINATIM_BASE_URL, USER_AGENT
from src.models.employee import UNKNOWN_CITY

# Constants
REQUEST_TIMEOUT = 10
CACHE_TTL = 24 * 60 * 60

# Address fields checked in order when naming a place
PLACE_FIELDS = ("city", "town", "village", "hamlet", "county", "state", "country")

# Get logger
logger = logging.getLogger(__name__)


def bucket_key(latitude: float, longitude: float) -> Tuple[float, float]:
    # Adding 0.0 collapses -0.0 into 0.0
    return (round(latitude, 1) + 0.0, round(longitude, 1) + 0.0)


def place_name_from_response(data: Any) -> str:
    if not isinstance(data, dict):
        return UNKNOWN_CITY

    address = data.get("address")
    if isinstance(address, dict):
        for field in PLACE_FIELDS:
            value = address.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()

    display_name = data.get("display_name")
    if isinstance(display_name, str):
        leading = display_name.split(",")[0].strip()
        if leading:
            return leading

    return UNKNOWN_CITY


class GeocodeCache:
    """
    Reverse geocoder with a per-bucket TTL cache.

    Failed lookups are cached as "Unknown" for the full TTL so an unreachable upstream
    is not hammered. There are no retries: one failed attempt is final.

    Args:
        session: object with a requests-style ``get`` (defaults to a new requests.Session)
        clock: callable returning seconds, used to age cache entries
    """

    def __init__(
        self,
        session=None,
        clock=time.monotonic,
        ttl: float = CACHE_TTL,
        timeout: float = REQUEST_TIMEOUT,
        url: str = NOMINATIM_BASE_URL,
        user_agent: str = USER_AGENT,
    ):
        self.session = session if session is not None else requests.Session()
        self.clock = clock
        self.ttl = ttl
        self.timeout = timeout
        self.url = url
        self.user_agent = user_agent

        # Format: {(lat_bucket, lon_bucket): (place_name, fetched_at)}
        self._entries: Dict[Tuple[float, float], Tuple[str, float]] = {}
        self._lock = Lock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def _cached(self, key) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        place_name, fetched_at = entry
        if self.clock() - fetched_at >= self.ttl:
            return None
        return place_name

    def lookup(self, latitude: float, longitude: float) -> str:
        key = bucket_key(latitude, longitude)

        cached = self._cached(key)
        if cached is not None:
            logger.debug(f"Geocode cache hit for bucket {key}: {cached}")
            return cached

        place_name = self._fetch(latitude, longitude)
        with self._lock:
            self._entries[key] = (place_name, self.clock())
        return place_name

    def _fetch(self, latitude: float, longitude: float) -> str:
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "json",
            "zoom": 10,
            "addressdetails": 1
        }

        headers = {
            "User-Agent": self.user_agent
        }

        try:
            response = self.session.get(
                self.url,
                params=params,
                headers=headers,
                timeout=self.timeout
            )

            if response.status_code != 200:
                logger.warning(f"Geocoding HTTP error ({response.status_code}) for coordinates ({latitude}, {longitude})")
                return UNKNOWN_CITY

            place_name = place_name_from_response(response.json())
            logger.info(f"Geocoded coordinates ({latitude}, {longitude}) to {place_name}")
            return place_name

        except ValueError as e:
            logger.warning(f"Invalid geocoding response for coordinates ({latitude}, {longitude}): {e}")
        except requests.RequestException as e:
            logger.warning(f"Network error geocoding coordinates ({latitude}, {longitude}): {e}")
        except Exception as e:
            logger.error(f"Unexpected error during geocoding: {e}")

        return UNKNOWN_CITY
