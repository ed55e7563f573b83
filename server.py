# server.py
import os
import sys
import json
import logging
from dataclasses import dataclass
from typing import Annotated, Any, Mapping, Optional

from dotenv import load_dotenv
load_dotenv()

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from errors import FailureReport, classify
from fr24_client import FR24Client, FR24_BASE_URL, RecordCount, Records, TypedResult, Unrecognized
from tool_registry import OPERATIONS, Operation, build_request, get_operation

HOST = os.getenv("MCP_HOST", "127.0.0.1")
PORT = int(os.getenv("MCP_PORT", "8000"))
TRANSPORT = os.getenv("MCP_TRANSPORT", "stdio")

FR24_API_KEY = os.getenv("FR24_API_KEY", "")

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("fr24.mcp.server")

mcp = FastMCP("Flightradar24 Gateway", host=HOST, port=PORT)

_fr24_client: Optional[FR24Client] = None


def get_fr24_client() -> FR24Client:
    """Return the shared gateway. Only the credential is shared between calls."""
    global _fr24_client
    if _fr24_client is None:
        _fr24_client = FR24Client(FR24_API_KEY)
    return _fr24_client


@dataclass(frozen=True)
class ToolOutcome:
    text: str
    failure: Optional[FailureReport] = None

    @property
    def is_error(self) -> bool:
        return self.failure is not None


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def render_result(operation: Operation, result: TypedResult, params: Mapping[str, Any]) -> str:
    if isinstance(result, Unrecognized):
        return (
            f"{operation.name} returned an unexpected response "
            f"(expected {result.expected.value}):\n{_dump(result.value)}"
        )
    if isinstance(result, RecordCount):
        return operation.summary.format(record_count=result.record_count, **params)
    if isinstance(result, Records):
        header = operation.summary.format(count=result.count, **params)
    else:
        header = operation.summary.format(**params)
    return f"{header}:\n{_dump(result.value)}"


async def run_operation(
    name: str,
    arguments: Mapping[str, Any],
    client: Optional[FR24Client] = None,
) -> ToolOutcome:
    """
    Validate, normalize, call upstream and render one operation.
    Never raises: every failure comes back as a ToolOutcome carrying a FailureReport.
    """
    logger.info("%s: %s", name, {k: v for k, v in arguments.items() if v is not None})
    try:
        operation = get_operation(name)
        endpoint, query = build_request(operation, arguments)
        result = await (client or get_fr24_client()).fetch(endpoint, query, operation.shape)
        return ToolOutcome(render_result(operation, result, query))
    except Exception as exc:
        report = classify(name, exc)
        return ToolOutcome(report.message, failure=report)


async def _call_tool(name: str, arguments: Mapping[str, Any]) -> str:
    outcome = await run_operation(name, arguments)
    if outcome.is_error:
        # FastMCP turns this into an isError tool result
        raise ToolError(outcome.text)
    return outcome.text


# --- Argument types ---

Bounds = Annotated[Optional[str], Field(description="Coordinates defining an area. Order: north, south, west, east (comma-separated float values).")]
Flights = Annotated[Optional[str], Field(description="Flight numbers (comma-separated values, max 15).")]
Callsigns = Annotated[Optional[str], Field(description="Flight callsigns (comma-separated values, max 15).")]
Registrations = Annotated[Optional[str], Field(description="Aircraft registration numbers (comma-separated values, max 15).")]
PaintedAs = Annotated[Optional[str], Field(description="Aircraft painted in an airline's livery (ICAO code, comma-separated, max 15).")]
OperatingAs = Annotated[Optional[str], Field(description="Aircraft operating under an airline's call sign (ICAO code, comma-separated, max 15).")]
Airports = Annotated[Optional[str], Field(description="Airports (IATA/ICAO/ISO 3166-1 alpha-2) or countries. Use format: [direction:]<code>. Directions: inbound, outbound, both.")]
Routes = Annotated[Optional[str], Field(description="Flights between airports/countries (e.g., SE-US, ESSA-JFK). Max 15.")]
Aircraft = Annotated[Optional[str], Field(description="Aircraft ICAO type codes (comma-separated, max 15).")]
AltitudeRanges = Annotated[Optional[str], Field(description="Flight altitude ranges in feet (e.g., 0-3000, 5000-7000).")]
Squawks = Annotated[Optional[str], Field(description="Squawk codes in hex format (comma-separated).")]
Categories = Annotated[Optional[str], Field(description="Categories of flights (comma-separated: P, C, M, J, T, H, B, G, D, V, O, N).")]
DataSources = Annotated[Optional[str], Field(description="Source of information (comma-separated: ADSB, MLAT, ESTIMATED).")]
Airspaces = Annotated[Optional[str], Field(description="Flight information region in lower or upper airspace.")]
GroundSpeed = Annotated[Optional[str], Field(description="Flight ground speed in knots (single value or range, e.g., 120-140, 80).")]
Limit = Annotated[Optional[int], Field(description="Limit of results. Recommended, unless needed.")]
Timestamp = Annotated[int, Field(description="Unix timestamp for the historical snapshot.")]
DatetimeFrom = Annotated[str, Field(description="Start datetime (YYYY-MM-DDTHH:MM:SSZ). Requires flight_datetime_to.")]
DatetimeTo = Annotated[str, Field(description="End datetime (YYYY-MM-DDTHH:MM:SSZ). Requires flight_datetime_from.")]
Sort = Annotated[Optional[str], Field(description="Sorting order by first_seen: asc or desc (default: asc).")]
FlightIds = Annotated[str, Field(description="Flightradar24 flight IDs (comma-separated, max 15).")]
EventTypes = Annotated[str, Field(description="'all' or comma-separated event types: gate_departure, takeoff, cruising, airspace_transition, descent, landed, gate_arrival.")]


# --- MCP Tools ---

@mcp.tool()
async def health_check() -> str:
    """
    Simple health check for orchestrators and clients.
    Reports configuration only; does not call the Flightradar24 API.
    """
    return _dump({
        "status": "ok" if FR24_API_KEY else "misconfigured",
        "api_key_configured": bool(FR24_API_KEY),
        "base_url": FR24_BASE_URL,
        "operations": sorted(OPERATIONS),
    })


@mcp.tool()
async def get_live_flights_positions_light(
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns real-time aircraft flight movement information including latitude, longitude, speed, and altitude.
    IMPORTANT: At least one search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_live_flights_positions_light", locals())


@mcp.tool()
async def get_live_flights_positions_full(
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns real-time aircraft flight movement information alongside key flight and aircraft
    information such as origin, destination, callsign, registration and aircraft type.
    IMPORTANT: At least one search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_live_flights_positions_full", locals())


@mcp.tool()
async def get_live_flights_count(
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns the count of real-time aircraft flights matching the specified criteria.
    IMPORTANT: At least one search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_live_flights_count", locals())


@mcp.tool()
async def get_historic_flights_positions_light(
    timestamp: Timestamp,
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns historical aircraft flight movement information including latitude, longitude, speed and altitude.
    Data dates back to May 11, 2016, depending on the subscription plan.
    IMPORTANT: Timestamp is required, and at least one additional search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_historic_flights_positions_light", locals())


@mcp.tool()
async def get_historic_flights_positions_full(
    timestamp: Timestamp,
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns historical aircraft flight movement information alongside key flight and aircraft
    information such as origin, destination, callsign, registration and aircraft type.
    Data dates back to May 11, 2016, depending on the subscription plan.
    IMPORTANT: Timestamp is required, and at least one additional search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_historic_flights_positions_full", locals())


@mcp.tool()
async def get_historic_flights_count(
    timestamp: Timestamp,
    bounds: Bounds = None,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    altitude_ranges: AltitudeRanges = None,
    squawks: Squawks = None,
    categories: Categories = None,
    data_sources: DataSources = None,
    airspaces: Airspaces = None,
    gspeed: GroundSpeed = None,
    limit: Limit = None,
) -> str:
    """
    Returns number of historical aircraft flight positions.
    IMPORTANT: Timestamp is required, and at least one additional search parameter (other than limit) must be provided and non-empty.
    """
    return await _call_tool("get_historic_flights_count", locals())


@mcp.tool()
async def get_flight_summary_light(
    flight_datetime_from: DatetimeFrom,
    flight_datetime_to: DatetimeTo,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    sort: Sort = None,
    limit: Limit = None,
) -> str:
    """
    Returns key timings and locations of aircraft takeoffs and landings alongside all primary flight,
    aircraft, and operator information. Data is available starting from 2024-04-07.
    IMPORTANT: flight_datetime_from and flight_datetime_to are required, and at least one additional
    search parameter (other than sort and limit) must be provided.
    """
    return await _call_tool("get_flight_summary_light", locals())


@mcp.tool()
async def get_flight_summary_full(
    flight_datetime_from: DatetimeFrom,
    flight_datetime_to: DatetimeTo,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
    sort: Sort = None,
    limit: Limit = None,
) -> str:
    """
    Returns comprehensive timings and locations of aircraft takeoffs and landings, including detailed
    flight, aircraft, and operator information. Data is available starting from 2024-04-07.
    IMPORTANT: flight_datetime_from and flight_datetime_to are required, and at least one additional
    search parameter (other than sort and limit) must be provided.
    """
    return await _call_tool("get_flight_summary_full", locals())


@mcp.tool()
async def get_flight_summary_count(
    flight_datetime_from: DatetimeFrom,
    flight_datetime_to: DatetimeTo,
    flights: Flights = None,
    callsigns: Callsigns = None,
    registrations: Registrations = None,
    painted_as: PaintedAs = None,
    operating_as: OperatingAs = None,
    airports: Airports = None,
    routes: Routes = None,
    aircraft: Aircraft = None,
) -> str:
    """
    Returns the number of flights for a given flight summary query.
    IMPORTANT: flight_datetime_from and flight_datetime_to are required, and at least one additional search parameter must be provided.
    """
    return await _call_tool("get_flight_summary_count", locals())


@mcp.tool()
async def get_flight_tracks(
    flight_id: Annotated[str, Field(description="Flightradar24 ID of the flight (hexadecimal).")],
) -> str:
    """Returns positional tracks of a specific flight. REQUIRED: flight_id must be provided and non-empty."""
    return await _call_tool("get_flight_tracks", locals())


@mcp.tool()
async def get_historic_flight_events_light(flight_ids: FlightIds, event_types: EventTypes) -> str:
    """
    Returns flight events (takeoff, landing, gate and airspace transitions) for up to 15 historic flights.
    REQUIRED: flight_ids and event_types must be provided and non-empty.
    """
    return await _call_tool("get_historic_flight_events_light", locals())


@mcp.tool()
async def get_historic_flight_events_full(flight_ids: FlightIds, event_types: EventTypes) -> str:
    """
    Returns flight events for up to 15 historic flights alongside origin, destination and operator details.
    REQUIRED: flight_ids and event_types must be provided and non-empty.
    """
    return await _call_tool("get_historic_flight_events_full", locals())


@mcp.tool()
async def get_airline_info(icao: Annotated[str, Field(description="Airline ICAO code.")]) -> str:
    """Returns airline name, ICAO and IATA codes. REQUIRED: icao code must be provided and non-empty."""
    return await _call_tool("get_airline_info", locals())


@mcp.tool()
async def get_airport_info_light(code: Annotated[str, Field(description="Airport IATA or ICAO code.")]) -> str:
    """Returns airport name, ICAO and IATA codes. REQUIRED: code must be provided and non-empty."""
    return await _call_tool("get_airport_info_light", locals())


@mcp.tool()
async def get_airport_info_full(code: Annotated[str, Field(description="Airport IATA or ICAO code.")]) -> str:
    """
    Returns detailed airport information: full name, ICAO and IATA codes, localization, elevation,
    country, city, state, timezone details. REQUIRED: code must be provided and non-empty.
    """
    return await _call_tool("get_airport_info_full", locals())


# --- Run MCP Server ---
if __name__ == "__main__":
    if not FR24_API_KEY:
        logger.error("FR24_API_KEY environment variable is required")
        sys.exit(1)
    logger.info("Starting Flightradar24 MCP Server (transport=%s)", TRANSPORT)
    if TRANSPORT != "stdio":
        logger.info("Listening on %s:%s", HOST, PORT)
    mcp.run(transport=TRANSPORT)
