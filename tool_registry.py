# tool_registry.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote

from errors import ValidationError
from fr24_client import ResponseShape

logger = logging.getLogger("fr24.registry")

# Parameter kinds
TOKENS = "tokens"
INTEGER = "integer"
TIMESTAMP = "timestamp"
ENUM = "enum"

EVENT_TYPES = (
    "gate_departure",
    "takeoff",
    "cruising",
    "airspace_transition",
    "descent",
    "landed",
    "gate_arrival",
)


@dataclass(frozen=True)
class Param:
    name: str
    kind: str = TOKENS
    choices: Tuple[str, ...] = ()
    multiple: bool = False
    in_path: bool = False


@dataclass(frozen=True)
class Rule:
    """Which fields must be present and which ones do not count as a filter."""

    required: Tuple[str, ...] = ()
    exempt: Tuple[str, ...] = ()
    needs_filter: bool = False


@dataclass(frozen=True)
class Operation:
    name: str
    path: str
    params: Tuple[Param, ...]
    shape: ResponseShape
    summary: str
    rule: Rule = field(default_factory=Rule)

    @property
    def param_names(self) -> List[str]:
        return [p.name for p in self.params]

    @property
    def filter_names(self) -> List[str]:
        return [p.name for p in self.params if p.name not in self.rule.exempt]

    def endpoint(self, params: Mapping[str, Any]) -> str:
        """Fill the path template with the stripped path identifiers."""
        values = {p.name: quote(str(params[p.name]).strip(), safe="") for p in self.params if p.in_path}
        return self.path.format(**values)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def clean_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop every field whose value is None or an empty string."""
    return {k: v for k, v in params.items() if not is_blank(v)}


def validate_has_required_params(
    params: Mapping[str, Any],
    exclude_keys: Iterable[str] = ("limit",),
    available: Optional[Iterable[str]] = None,
) -> None:
    """
    Require at least one non-blank field outside `exclude_keys`.
    The error lists the fields that would have satisfied the rule.
    """
    exclude_keys = list(exclude_keys)
    if any(not is_blank(v) for k, v in params.items() if k not in exclude_keys):
        return
    names = list(available) if available is not None else list(params)
    candidates = [k for k in names if k not in exclude_keys]
    raise ValidationError(
        f"At least one parameter other than {', '.join(exclude_keys)} must be provided and non-empty. "
        f"Available parameters: {', '.join(candidates)}"
    )


def validate_request(operation: Operation, params: Mapping[str, Any]) -> None:
    unknown = [k for k in params if k not in operation.param_names]
    if unknown:
        raise ValidationError(
            f"Unknown parameter(s) for {operation.name}: {', '.join(sorted(unknown))}. "
            f"Accepted parameters: {', '.join(operation.param_names)}"
        )

    missing = [k for k in operation.rule.required if is_blank(params.get(k))]
    if missing:
        raise ValidationError(f"Required parameter(s) missing or empty: {', '.join(missing)}")

    if operation.rule.needs_filter:
        validate_has_required_params(params, operation.rule.exempt, available=operation.filter_names)


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{name} must be an integer, got {value!r}")


def _split_tokens(name: str, value: Any) -> List[str]:
    tokens = [t.strip() for t in str(value).split(",") if t.strip()]
    if not tokens:
        raise ValidationError(f"{name} must contain at least one comma-separated value")
    return tokens


def coerce_value(param: Param, value: Any) -> Any:
    if param.kind in (INTEGER, TIMESTAMP):
        return _coerce_int(param.name, value)

    tokens = _split_tokens(param.name, value)
    if param.kind == ENUM:
        tokens = [t.lower() for t in tokens]
        if not param.multiple and len(tokens) > 1:
            raise ValidationError(f"{param.name} accepts a single value: {', '.join(param.choices)}")
        bad = [t for t in tokens if t not in param.choices]
        if bad:
            raise ValidationError(
                f"Invalid value(s) for {param.name}: {', '.join(bad)}. "
                f"Allowed: {', '.join(param.choices)}"
            )
    return ",".join(tokens)


def build_request(operation: Operation, arguments: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Validate raw tool arguments and turn them into (endpoint, query params).
    Raises ValidationError before anything is sent upstream.
    """
    validate_request(operation, arguments)
    cleaned = clean_params(arguments)
    by_name = {p.name: p for p in operation.params}
    coerced = {k: coerce_value(by_name[k], v) for k, v in cleaned.items()}

    endpoint = operation.endpoint(coerced)
    query = {k: v for k, v in coerced.items() if not by_name[k].in_path}
    logger.debug("Built request for %s: %s %s", operation.name, endpoint, query)
    return endpoint, query


# --- Parameter schemas ---

_POSITION_FILTERS = (
    Param("bounds"),
    Param("flights"),
    Param("callsigns"),
    Param("registrations"),
    Param("painted_as"),
    Param("operating_as"),
    Param("airports"),
    Param("routes"),
    Param("aircraft"),
    Param("altitude_ranges"),
    Param("squawks"),
    Param("categories"),
    Param("data_sources"),
    Param("airspaces"),
    Param("gspeed"),
)

_SUMMARY_FILTERS = (
    Param("flights"),
    Param("callsigns"),
    Param("registrations"),
    Param("painted_as"),
    Param("operating_as"),
    Param("airports"),
    Param("routes"),
    Param("aircraft"),
)

_LIMIT = Param("limit", kind=INTEGER)
_TIMESTAMP = Param("timestamp", kind=TIMESTAMP)
_SORT = Param("sort", kind=ENUM, choices=("asc", "desc"))
_DATETIME_RANGE = (Param("flight_datetime_from"), Param("flight_datetime_to"))

LIVE_POSITION_PARAMS = _POSITION_FILTERS + (_LIMIT,)
HISTORIC_POSITION_PARAMS = (_TIMESTAMP,) + _POSITION_FILTERS + (_LIMIT,)
FLIGHT_SUMMARY_PARAMS = _DATETIME_RANGE + _SUMMARY_FILTERS + (_SORT, _LIMIT)
FLIGHT_SUMMARY_COUNT_PARAMS = _DATETIME_RANGE + _SUMMARY_FILTERS
FLIGHT_EVENTS_PARAMS = (
    Param("flight_ids"),
    Param("event_types", kind=ENUM, choices=("all",) + EVENT_TYPES, multiple=True),
)

_LIVE_RULE = Rule(exempt=("limit",), needs_filter=True)
_HISTORIC_RULE = Rule(required=("timestamp",), exempt=("timestamp", "limit"), needs_filter=True)
_SUMMARY_RULE = Rule(
    required=("flight_datetime_from", "flight_datetime_to"),
    exempt=("flight_datetime_from", "flight_datetime_to", "sort", "limit"),
    needs_filter=True,
)
_SUMMARY_COUNT_RULE = Rule(
    required=("flight_datetime_from", "flight_datetime_to"),
    exempt=("flight_datetime_from", "flight_datetime_to"),
    needs_filter=True,
)


def _operations(*ops: Operation) -> Dict[str, Operation]:
    return {op.name: op for op in ops}


OPERATIONS: Dict[str, Operation] = _operations(
    Operation(
        name="get_live_flights_positions_light",
        path="/live/flight-positions/light",
        params=LIVE_POSITION_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} flights (light details)",
        rule=_LIVE_RULE,
    ),
    Operation(
        name="get_live_flights_positions_full",
        path="/live/flight-positions/full",
        params=LIVE_POSITION_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} flights (full details)",
        rule=_LIVE_RULE,
    ),
    Operation(
        name="get_live_flights_count",
        path="/live/flight-positions/count",
        params=LIVE_POSITION_PARAMS,
        shape=ResponseShape.COUNT,
        summary="Live flight count: {record_count}",
        rule=_LIVE_RULE,
    ),
    Operation(
        name="get_historic_flights_positions_light",
        path="/historic/flight-positions/light",
        params=HISTORIC_POSITION_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} historic flights (light details) at timestamp {timestamp}",
        rule=_HISTORIC_RULE,
    ),
    Operation(
        name="get_historic_flights_positions_full",
        path="/historic/flight-positions/full",
        params=HISTORIC_POSITION_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} historic flights (full details) at timestamp {timestamp}",
        rule=_HISTORIC_RULE,
    ),
    Operation(
        name="get_historic_flights_count",
        path="/historic/flight-positions/count",
        params=HISTORIC_POSITION_PARAMS,
        shape=ResponseShape.COUNT,
        summary="Historic flight count at timestamp {timestamp}: {record_count}",
        rule=_HISTORIC_RULE,
    ),
    Operation(
        name="get_flight_summary_light",
        path="/flight-summary/light",
        params=FLIGHT_SUMMARY_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} flight summaries (light details)",
        rule=_SUMMARY_RULE,
    ),
    Operation(
        name="get_flight_summary_full",
        path="/flight-summary/full",
        params=FLIGHT_SUMMARY_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found {count} flight summaries (full details)",
        rule=_SUMMARY_RULE,
    ),
    Operation(
        name="get_flight_summary_count",
        path="/flight-summary/count",
        params=FLIGHT_SUMMARY_COUNT_PARAMS,
        shape=ResponseShape.COUNT,
        summary="Flight summary count: {record_count}",
        rule=_SUMMARY_COUNT_RULE,
    ),
    Operation(
        name="get_flight_tracks",
        path="/flight-tracks",
        params=(Param("flight_id"),),
        shape=ResponseShape.LIST,
        summary="Found track points for flight {flight_id}",
        rule=Rule(required=("flight_id",)),
    ),
    Operation(
        name="get_historic_flight_events_light",
        path="/historic/flight-events/light",
        params=FLIGHT_EVENTS_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found events for {count} flights (light details)",
        rule=Rule(required=("flight_ids", "event_types")),
    ),
    Operation(
        name="get_historic_flight_events_full",
        path="/historic/flight-events/full",
        params=FLIGHT_EVENTS_PARAMS,
        shape=ResponseShape.LIST,
        summary="Found events for {count} flights (full details)",
        rule=Rule(required=("flight_ids", "event_types")),
    ),
    Operation(
        name="get_airline_info",
        path="/static/airlines/{icao}/light",
        params=(Param("icao", in_path=True),),
        shape=ResponseShape.SINGLE,
        summary="Airline information (light)",
        rule=Rule(required=("icao",)),
    ),
    Operation(
        name="get_airport_info_light",
        path="/static/airports/{code}/light",
        params=(Param("code", in_path=True),),
        shape=ResponseShape.SINGLE,
        summary="Airport information (light)",
        rule=Rule(required=("code",)),
    ),
    Operation(
        name="get_airport_info_full",
        path="/static/airports/{code}/full",
        params=(Param("code", in_path=True),),
        shape=ResponseShape.SINGLE,
        summary="Airport information (full)",
        rule=Rule(required=("code",)),
    ),
)


def get_operation(name: str) -> Operation:
    try:
        return OPERATIONS[name]
    except KeyError:
        raise ValidationError(f"Unknown operation: {name}") from None
