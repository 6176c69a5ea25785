"""
Turn-by-turn navigation - simulation entry point

Loads a route (a saved provider response, or a live request to the route
provider) and drives a simulated vehicle along it in real time, logging
every progress update and the final trip summary.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import simpy.rt

from core.exceptions import ConfigurationError, NavigationError, ValidationError
from geo.routing_client import RoutingClient, TravelMode, parse_route_response
from nav_logging import setup_logging
from navigation.models import Coordinate, NavigationMode, Route
from navigation.session import NavigationSession, SessionEvent, SessionEventType
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def parse_coordinate(value: str) -> Coordinate:
    """Parse "lon,lat" into a Coordinate."""
    try:
        lon, lat = (float(part) for part in value.split(","))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected 'lon,lat', got {value!r}") from e
    return Coordinate(lon=lon, lat=lat)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate turn-by-turn navigation along a route")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--route-file", type=Path, help="Saved route provider response (JSON)")
    source.add_argument(
        "--origin", type=parse_coordinate, help="Origin as lon,lat (requests a route)"
    )
    parser.add_argument("--destination", type=parse_coordinate, help="Destination as lon,lat")
    parser.add_argument("--vehicle", choices=[mode.value for mode in TravelMode], default=None)
    parser.add_argument("--speed", type=int, default=None, help="Speed multiplier")
    return parser


def load_route(args: argparse.Namespace, settings: Settings) -> Route:
    if args.route_file is not None:
        try:
            with open(args.route_file, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read route file {args.route_file}: {e}") from e
        except ValueError as e:
            raise ValidationError(f"Route file {args.route_file} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Route file {args.route_file} does not hold a JSON object")
        return parse_route_response(data)

    if args.destination is None:
        raise SystemExit("--destination is required with --origin")
    client = RoutingClient.from_settings(settings.routing)
    vehicle = TravelMode(args.vehicle or settings.routing.default_vehicle)
    return client.get_route_sync(args.origin, args.destination, vehicle)


def log_event(event: SessionEvent) -> None:
    if event.event_type == SessionEventType.PROGRESS and event.snapshot is not None:
        snapshot = event.snapshot
        logger.info(
            f"point={snapshot.closest_point_index} "
            f"instruction={snapshot.active_instruction_index} "
            f"next_turn={snapshot.distance_to_next_maneuver_meters:.0f}m "
            f"remaining={snapshot.remaining_distance_meters:.0f}m "
            f"eta={snapshot.remaining_duration_millis_estimate / 1000:.0f}s "
            f"progress={snapshot.progress_fraction:.0%}"
        )
    elif event.event_type == SessionEventType.ERROR:
        logger.warning(f"Session error ({event.error_type}): {event.error}")
    elif event.event_type == SessionEventType.COMPLETED and event.summary is not None:
        summary = event.summary
        logger.info(
            f"Trip summary: distance={summary.total_distance_meters:.0f}m, "
            f"elapsed={summary.elapsed_seconds:.0f}s, "
            f"average_speed={summary.average_speed_kph:.1f}km/h"
        )
    elif event.event_type == SessionEventType.STATE_CHANGED:
        previous = event.previous_state.value if event.previous_state else "-"
        logger.info(f"State: {previous} -> {event.state.value}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point - runs one simulated navigation session."""
    settings = get_settings()

    log_format = os.environ.get("LOG_FORMAT") or settings.navigation.log_format
    setup_logging(
        level=settings.navigation.log_level,
        json_output=log_format == "json",
        environment=os.environ.get("ENVIRONMENT", "development"),
    )

    args = build_parser().parse_args(argv)

    try:
        route = load_route(args, settings)
    except NavigationError as e:
        logger.error(f"Could not load route: {e}")
        return 1

    # strict=False: a slow listener makes the vehicle lag instead of crashing
    env = simpy.rt.RealtimeEnvironment(factor=1.0, strict=False)
    session = NavigationSession(settings=settings.navigation, env=env)
    session.subscribe(log_event)

    try:
        session.start(route, NavigationMode.SIMULATED, speed_multiplier=args.speed)
    except (NavigationError, ValueError) as e:
        logger.error(f"Could not start navigation: {e}")
        return 1

    try:
        env.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping session")
        session.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
