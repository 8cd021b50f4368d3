"""Place enrichment through OpenStreetMap geocoders.

Photon is tried first; Nominatim is the fallback. Both are free and keyless,
so requests are spaced out per service and results are cached.
"""

import asyncio
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import httpx

from tripsift.core.errors import CircuitOpenError, ErrorInfo, ProviderRequestError
from tripsift.core.logging import get_logger
from tripsift.core.resilience.circuit_breaker import CircuitBreakerRegistry
from tripsift.core.utils.cache import TTLCache
from tripsift.core.utils.http_pool import get_client
from tripsift.core.utils.retry import RetryConfig, get_retry_config, retry_async
from tripsift.extraction.schemas import Coordinates, EnrichedPlaceData, ExtractedPlace, PlaceStatus

_log = get_logger("search.enrichment")

NOMINATIM_BASE = "https://nominatim.openstreetmap.org"
PHOTON_BASE = "https://photon.komoot.io"

NOMINATIM_MIN_INTERVAL = 1.1  # usage policy: at most one request per second
PHOTON_MIN_INTERVAL = 0.1

DEFAULT_USER_AGENT = "TripSift/0.3 (trip planning chat parser)"

GOA_PLACES = frozenset({
    "baga", "calangute", "anjuna", "vagator", "palolem", "colva", "candolim",
    "aguada", "chapora", "panaji", "margao", "mapusa", "dudhsagar", "arambol",
    "morjim", "ashwem", "mandrem", "sinquerim", "dona paula", "miramar",
})

INDIAN_DESTINATIONS = frozenset({
    "coorg", "munnar", "ooty", "kodaikanal", "wayanad", "alleppey", "kovalam",
    "hampi", "mysore", "bangalore", "chennai", "hyderabad", "mumbai", "delhi",
    "jaipur", "udaipur", "jodhpur", "rishikesh", "manali", "shimla", "darjeeling",
})

_COASTAL_RE = re.compile(r"beach|fort|shack", re.IGNORECASE)
_FOREIGN_RE = re.compile(r"usa|america|europe|spain", re.IGNORECASE)


def enhance_search_query(place_name: str) -> str:
    """Add region context so short Indian place names geocode correctly."""
    lower = place_name.strip().lower()
    if lower in GOA_PLACES:
        return f"{place_name}, Goa, India"
    if lower in INDIAN_DESTINATIONS:
        return f"{place_name}, India"
    if _COASTAL_RE.search(place_name) and not _FOREIGN_RE.search(place_name):
        return f"{place_name}, Goa, India"
    return place_name


@runtime_checkable
class PlaceEnricher(Protocol):
    """Hook the pipeline calls to attach coordinates to extracted places."""

    async def enrich(self, places: List[ExtractedPlace], max_count: int) -> List[ExtractedPlace]: ...


class _RateLimiter:
    """Keeps consecutive calls at least ``interval`` seconds apart."""

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            elapsed = self._clock() - self._last
            if elapsed < self.interval:
                await self._sleep(self.interval - elapsed)
            self._last = self._clock()


def _parse_nominatim(items: Any) -> List[EnrichedPlaceData]:
    results: List[EnrichedPlaceData] = []
    for item in items or []:
        try:
            display_name = str(item.get("display_name", ""))
            results.append(EnrichedPlaceData(
                place_id=str(item["place_id"]),
                name=display_name.split(",")[0].strip(),
                formatted_address=display_name,
                coordinates=Coordinates(lat=float(item["lat"]), lng=float(item["lon"])),
                types=[t for t in (item.get("type"), item.get("class")) if t],
                source="nominatim",
            ))
        except (KeyError, TypeError, ValueError, AttributeError):
            continue
    return results


def _parse_photon(body: Any, query: str) -> List[EnrichedPlaceData]:
    features = body.get("features", []) if isinstance(body, dict) else []
    results: List[EnrichedPlaceData] = []
    for feature in features:
        try:
            props = feature.get("properties") or {}
            lng, lat = feature["geometry"]["coordinates"][:2]
            parts = [props.get(k) for k in ("name", "street", "city", "state", "country")]
            parts = [str(p) for p in parts if p]
            osm_id = props.get("osm_id")
            results.append(EnrichedPlaceData(
                place_id=str(osm_id) if osm_id is not None else f"photon:{lat},{lng}",
                name=props.get("name") or (parts[0] if parts else query),
                formatted_address=", ".join(parts),
                coordinates=Coordinates(lat=float(lat), lng=float(lng)),
                types=[props["type"]] if props.get("type") else [],
                source="photon",
            ))
        except (KeyError, TypeError, ValueError, AttributeError):
            continue
    return results


class PlaceSearchService:
    """Cached geocoding with Photon first and Nominatim as fallback.

    Each backend call goes through the retry executor behind the circuit
    breaker of its service. A backend failure yields no results instead of
    raising, so one flaky geocoder never blocks the other.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreakerRegistry] = None,
        cache: Optional[TTLCache[EnrichedPlaceData]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        retry_config: Optional[RetryConfig] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._client = client
        self._breaker = breaker
        self.cache = cache if cache is not None else TTLCache(name="geocode")
        self.user_agent = user_agent
        self.retry_config = retry_config or get_retry_config("nominatim")
        self.timeout = timeout
        self._sleep = sleep
        self._limiters: Dict[str, _RateLimiter] = {
            "photon": _RateLimiter(PHOTON_MIN_INTERVAL, sleep=sleep),
            "nominatim": _RateLimiter(NOMINATIM_MIN_INTERVAL, sleep=sleep),
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_client(service="nominatim", timeout=self.timeout)

    async def _get_json(self, service: str, url: str, params: Dict[str, str]) -> Any:
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        log = _log.bind(service=service)

        async def attempt() -> Any:
            await self._limiters[service].wait()
            client = await self._get_client()
            try:
                response = await client.get(url, params=params, headers=headers, timeout=self.timeout)
            except httpx.TransportError as e:
                raise ProviderRequestError(
                    ErrorInfo(message=f"{service} connection error: {e}", is_retryable=True),
                    provider=service,
                ) from e
            if response.status_code >= 400:
                raise ProviderRequestError(
                    ErrorInfo(
                        message=f"{service} error: {response.status_code}",
                        status=response.status_code,
                        is_retryable=response.status_code in (429, 503),
                    ),
                    provider=service,
                )
            return response.json()

        def on_retry(attempt_no: int, error: BaseException, delay: float) -> None:
            log.warning("Geocoder retry", attempt=attempt_no, delay=round(delay, 2))

        async def with_retries() -> Any:
            return await retry_async(attempt, config=self.retry_config, on_retry=on_retry, sleep=self._sleep)

        if self._breaker is None:
            return await with_retries()
        return await self._breaker.with_breaker(service, with_retries)

    async def search_photon(self, query: str, limit: int = 3) -> List[EnrichedPlaceData]:
        try:
            body = await self._get_json("photon", f"{PHOTON_BASE}/api/", {"q": query, "limit": str(limit)})
        except (ProviderRequestError, CircuitOpenError, httpx.HTTPError, ValueError) as e:
            _log.warning("Photon search failed", query=query, error=str(e)[:200])
            return []
        return _parse_photon(body, query)

    async def search_nominatim(self, query: str, limit: int = 3) -> List[EnrichedPlaceData]:
        params = {"q": query, "format": "json", "limit": str(limit), "addressdetails": "1"}
        try:
            body = await self._get_json("nominatim", f"{NOMINATIM_BASE}/search", params)
        except (ProviderRequestError, CircuitOpenError, httpx.HTTPError, ValueError) as e:
            _log.warning("Nominatim search failed", query=query, error=str(e)[:200])
            return []
        return _parse_nominatim(body)

    async def search_place(self, query: str) -> Optional[EnrichedPlaceData]:
        """Best match for ``query``: cache, then Photon, then Nominatim."""
        key = query.strip().lower()
        cached = self.cache.get(key)
        if cached is not None:
            _log.debug("Geocode cache hit", query=query)
            return cached

        places = await self.search_photon(query)
        if not places:
            _log.debug("Photon empty, falling back", query=query)
            places = await self.search_nominatim(query)
        if not places:
            return None

        self.cache.set(key, places[0])
        return places[0]


class NominatimEnricher:
    """Attaches coordinates to confirmed places that have none yet."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreakerRegistry] = None,
        cache: Optional[TTLCache[EnrichedPlaceData]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        search: Optional[PlaceSearchService] = None,
        **search_kwargs: Any,
    ):
        self.search = search or PlaceSearchService(
            client=client, breaker=breaker, cache=cache, user_agent=user_agent, **search_kwargs
        )

    async def enrich(self, places: Sequence[ExtractedPlace], max_count: int = 5) -> List[ExtractedPlace]:
        targets = [
            p for p in places
            if p.coordinates is None and p.status == PlaceStatus.CONFIRMED
        ][:max(0, max_count)]
        _log.info("Enriching places", count=len(targets), total=len(places))

        enriched: Dict[int, ExtractedPlace] = {}
        for place in targets:
            query = enhance_search_query(place.name)
            try:
                match = await self.search.search_place(query)
            except Exception as e:
                _log.warning("Place enrichment failed", place=place.name, error=str(e)[:200])
                continue
            if match is None:
                _log.debug("No geocode match", place=place.name, query=query)
                continue
            enriched[id(place)] = place.model_copy(
                update={"enriched_data": match, "coordinates": match.coordinates}
            )
            _log.info("Place enriched", place=place.name, address=match.formatted_address[:80])

        return [enriched.get(id(p), p) for p in places]
