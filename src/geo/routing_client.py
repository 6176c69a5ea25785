"""Client for the external route provider.

The provider answers in the GraphHopper path format: ``paths[0]`` carries
the encoded geometry (``points``), the totals (``distance`` in meters,
``time`` in milliseconds) and ``instructions`` whose ``interval`` indexes
into the decoded geometry.
"""

import logging
from enum import Enum
from typing import Any

import httpx
import requests

from core.exceptions import NetworkError, ServiceUnavailableError, ValidationError
from core.retry import RetryConfig, with_retry, with_retry_sync
from navigation.models import Coordinate, Instruction, Route
from navigation.route import route_from_encoded
from settings import RoutingSettings

logger = logging.getLogger(__name__)


class TravelMode(str, Enum):
    CAR = "car"
    BIKE = "bike"
    FOOT = "foot"
    MOTORCYCLE = "motorcycle"


class NoRouteFoundError(ValidationError):
    """No route found between coordinates. Inherits from ValidationError (non-retryable)."""

    pass


class RoutingServiceError(ServiceUnavailableError):
    """Route provider error (5xx, 429 or transport failure). Retryable."""

    pass


class RoutingTimeoutError(NetworkError):
    """Route provider request timeout. Retryable."""

    pass


# Errors the client retries; anything else fails on the first attempt
ROUTING_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (RoutingServiceError, RoutingTimeoutError)


def parse_route_response(data: dict[str, Any]) -> Route:
    """Build a validated Route from a provider response body.

    Raises:
        NoRouteFoundError: The response holds no path
        MalformedGeometry, EmptyRoute, ValidationError: The path is unusable
    """
    paths = data.get("paths") or []
    if not paths:
        raise NoRouteFoundError(
            str(
                data.get("messages")
                or data.get("message")
                or "No route found between coordinates"
            ),
            details={"code": data.get("code")},
        )

    path = paths[0]
    if path.get("points_encoded") is False:
        raise ValidationError("Route provider returned unencoded geometry")

    try:
        instructions = [
            Instruction(
                text=raw.get("text", ""),
                street_name=raw.get("street_name") or "",
                interval_start=raw["interval"][0],
                interval_end=raw["interval"][1],
                distance_meters=float(raw.get("distance", 0.0)),
                duration_millis=float(raw.get("time", 0.0)),
                sign=int(raw.get("sign", 0)),
            )
            for raw in path.get("instructions", [])
        ]
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ValidationError(f"Malformed route instruction: {e}") from e

    return route_from_encoded(
        path.get("points", ""),
        instructions,
        total_distance_meters=float(path["distance"]) if "distance" in path else None,
        total_duration_millis=float(path["time"]) if "time" in path else None,
    )


class RoutingClient:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 5.0,
        locale: str = "vi",
        retry_config: RetryConfig | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.locale = locale
        self._retry_config = retry_config or RetryConfig(
            max_attempts=1, retryable_exceptions=ROUTING_RETRYABLE_ERRORS
        )

    @classmethod
    def from_settings(cls, settings: RoutingSettings) -> "RoutingClient":
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            timeout=settings.timeout_seconds,
            locale=settings.locale,
            retry_config=RetryConfig(
                max_attempts=settings.max_retries,
                base_delay=settings.retry_base_delay,
                multiplier=settings.retry_multiplier,
                retryable_exceptions=ROUTING_RETRYABLE_ERRORS,
            ),
        )

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        vehicle: TravelMode = TravelMode.CAR,
    ) -> Route:
        """Get a route between two coordinates."""

        async def fetch() -> Route:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(
                        self._route_url(), params=self._params(origin, destination, vehicle)
                    )
            except httpx.TimeoutException as e:
                raise RoutingTimeoutError(f"Request timed out after {self.timeout}s") from e
            except httpx.NetworkError as e:
                raise RoutingServiceError(f"Network error: {e}") from e

            return self._handle_response(response.status_code, response.json, response.headers)

        return await with_retry(fetch, self._retry_config, operation_name="route request")

    def get_route_sync(
        self,
        origin: Coordinate,
        destination: Coordinate,
        vehicle: TravelMode = TravelMode.CAR,
    ) -> Route:
        """Synchronous route fetching for callers without an event loop."""

        def fetch() -> Route:
            try:
                response = requests.get(
                    self._route_url(),
                    params=self._params(origin, destination, vehicle),
                    timeout=self.timeout,
                )
            except requests.Timeout as e:
                raise RoutingTimeoutError(f"Request timed out after {self.timeout}s") from e
            except requests.RequestException as e:
                raise RoutingServiceError(f"Network error: {e}") from e

            return self._handle_response(response.status_code, response.json, response.headers)

        return with_retry_sync(fetch, self._retry_config, operation_name="route request")

    def _route_url(self) -> str:
        return f"{self.base_url}/route"

    def _params(
        self, origin: Coordinate, destination: Coordinate, vehicle: TravelMode
    ) -> list[tuple[str, str]]:
        # The provider takes "lat,lon"; repeated "point" keys keep their order
        return [
            ("api-version", "1.1"),
            ("apikey", self.api_key),
            ("point", f"{origin.lat},{origin.lon}"),
            ("point", f"{destination.lat},{destination.lon}"),
            ("vehicle", TravelMode(vehicle).value),
            ("locale", self.locale),
            ("points_encoded", "true"),
        ]

    def _handle_response(self, status_code: int, read_json: Any, headers: Any) -> Route:
        if status_code >= 500 or status_code == 429:
            raise RoutingServiceError(
                f"Route provider error: {status_code}",
                details={"status": status_code, "retry_after": headers.get("Retry-After")},
            )

        try:
            data = read_json()
        except ValueError as e:
            raise RoutingServiceError(f"Route provider returned invalid JSON: {e}") from e

        if status_code >= 400 and not data.get("paths"):
            raise NoRouteFoundError(
                data.get("message") or f"Route request rejected: {status_code}",
                details={"status": status_code},
            )

        route = parse_route_response(data)
        logger.info(
            f"Route received: {len(route.points)} points, {len(route.instructions)} instructions, "
            f"{route.total_distance_meters:.0f}m"
        )
        return route
