"""
Unit tests for the operation catalog: parameter cleaning, the required /
meaningful-parameter rules and endpoint building. No network involved.
"""
import pytest

from errors import ValidationError
from fr24_client import ResponseShape
from tool_registry import (
    OPERATIONS,
    build_request,
    clean_params,
    get_operation,
    validate_has_required_params,
    validate_request,
)


def test_clean_params_drops_none_and_empty_strings():
    cleaned = clean_params({"bounds": "1,2,3,4", "flights": "", "callsigns": None, "limit": 0, "routes": "   "})
    assert cleaned == {"bounds": "1,2,3,4", "limit": 0}


def test_clean_params_is_idempotent():
    params = {"a": "x", "b": None, "c": "", "d": 5}
    once = clean_params(params)
    assert clean_params(once) == once


def test_clean_params_returns_new_mapping():
    params = {"a": None}
    clean_params(params)
    assert params == {"a": None}


def test_validate_has_required_params_lists_available_fields():
    with pytest.raises(ValidationError) as exc_info:
        validate_has_required_params({"bounds": None, "flights": "", "limit": 10}, ["limit"])
    message = str(exc_info.value)
    assert "other than limit" in message
    assert "Available parameters: bounds, flights" in message


def test_validate_has_required_params_accepts_one_filter():
    validate_has_required_params({"bounds": None, "flights": "BA123", "limit": 10}, ["limit"])


@pytest.mark.parametrize("name", [n for n, op in OPERATIONS.items() if op.rule.needs_filter])
def test_filter_rule_rejects_only_exempt_fields(name):
    operation = OPERATIONS[name]
    args = {
        "timestamp": 1700000000,
        "flight_datetime_from": "2024-05-01T00:00:00Z",
        "flight_datetime_to": "2024-05-01T06:00:00Z",
        "sort": "asc",
        "limit": 5,
    }
    args = {k: v for k, v in args.items() if k in operation.param_names}
    with pytest.raises(ValidationError, match="At least one parameter"):
        validate_request(operation, args)

    validate_request(operation, dict(args, flights="BA123"))


def test_historic_timestamp_alone_fails_with_available_fields():
    operation = get_operation("get_historic_flights_positions_full")
    with pytest.raises(ValidationError) as exc_info:
        build_request(operation, {"timestamp": 1700000000})
    message = str(exc_info.value)
    assert "Available parameters:" in message
    assert "bounds" in message and "gspeed" in message
    assert "timestamp" not in message.split("Available parameters:")[1]
    assert "limit" not in message.split("Available parameters:")[1]


def test_historic_requires_timestamp():
    operation = get_operation("get_historic_flights_count")
    with pytest.raises(ValidationError, match="timestamp"):
        validate_request(operation, {"flights": "BA123"})


def test_flight_summary_requires_both_datetimes():
    operation = get_operation("get_flight_summary_light")
    with pytest.raises(ValidationError, match="flight_datetime_to"):
        validate_request(operation, {"flight_datetime_from": "2024-05-01T00:00:00Z", "flights": "BA123"})


def test_flight_summary_sort_and_limit_are_not_filters():
    operation = get_operation("get_flight_summary_full")
    args = {
        "flight_datetime_from": "2024-05-01T00:00:00Z",
        "flight_datetime_to": "2024-05-01T06:00:00Z",
        "sort": "desc",
        "limit": 10,
    }
    with pytest.raises(ValidationError) as exc_info:
        validate_request(operation, args)
    assert "sort" not in str(exc_info.value).split("Available parameters:")[1]


@pytest.mark.parametrize("name, field", [
    ("get_flight_tracks", "flight_id"),
    ("get_airline_info", "icao"),
    ("get_airport_info_light", "code"),
    ("get_airport_info_full", "code"),
    ("get_historic_flight_events_full", "flight_ids"),
])
def test_identifier_must_be_non_empty(name, field):
    with pytest.raises(ValidationError, match=field):
        validate_request(get_operation(name), {field: "  "})


def test_live_positions_need_no_required_field():
    endpoint, query = build_request(get_operation("get_live_flights_count"), {"airports": "inbound:WAW"})
    assert endpoint == "/live/flight-positions/count"
    assert query == {"airports": "inbound:WAW"}


def test_unknown_argument_is_rejected():
    with pytest.raises(ValidationError, match="Unknown parameter"):
        validate_request(get_operation("get_airline_info"), {"icao": "LOT", "iata": "LO"})


def test_unknown_operation_is_a_validation_error():
    with pytest.raises(ValidationError, match="Unknown operation"):
        get_operation("get_weather")


def test_airport_endpoint_strips_whitespace():
    endpoint, query = build_request(get_operation("get_airport_info_full"), {"code": "  EPWA \n"})
    assert endpoint == "/static/airports/EPWA/full"
    assert query == {}


def test_airline_endpoint_uses_light_suffix():
    endpoint, _ = build_request(get_operation("get_airline_info"), {"icao": "RYR"})
    assert endpoint == "/static/airlines/RYR/light"


def test_build_request_coerces_loose_values():
    operation = get_operation("get_historic_flights_positions_light")
    _, query = build_request(operation, {
        "timestamp": "1700000000",
        "flights": " BA123 , LO1 ",
        "limit": 10.0,
        "bounds": None,
        "routes": "",
    })
    assert query == {"timestamp": 1700000000, "flights": "BA123,LO1", "limit": 10}


def test_build_request_rejects_non_integer_limit():
    with pytest.raises(ValidationError, match="limit must be an integer"):
        build_request(get_operation("get_live_flights_positions_light"), {"flights": "BA123", "limit": "ten"})


def test_sort_is_normalized_and_checked():
    operation = get_operation("get_flight_summary_light")
    args = {
        "flight_datetime_from": "2024-05-01T00:00:00Z",
        "flight_datetime_to": "2024-05-01T06:00:00Z",
        "flights": "BA123",
    }
    _, query = build_request(operation, dict(args, sort="DESC"))
    assert query["sort"] == "desc"

    with pytest.raises(ValidationError, match="Invalid value"):
        build_request(operation, dict(args, sort="newest"))


def test_event_types_accept_several_known_values():
    operation = get_operation("get_historic_flight_events_light")
    _, query = build_request(operation, {"flight_ids": "2f1a3b4c", "event_types": "takeoff, landed"})
    assert query == {"flight_ids": "2f1a3b4c", "event_types": "takeoff,landed"}

    with pytest.raises(ValidationError, match="boarding"):
        build_request(operation, {"flight_ids": "2f1a3b4c", "event_types": "boarding"})


def test_catalog_shapes():
    assert OPERATIONS["get_live_flights_positions_full"].shape is ResponseShape.LIST
    assert OPERATIONS["get_flight_summary_count"].shape is ResponseShape.COUNT
    assert OPERATIONS["get_airport_info_light"].shape is ResponseShape.SINGLE


def test_flight_summary_count_exempts_only_the_datetimes():
    operation = get_operation("get_flight_summary_count")
    args = {"flight_datetime_from": "2024-05-01T00:00:00Z", "flight_datetime_to": "2024-05-01T06:00:00Z"}
    with pytest.raises(ValidationError) as exc_info:
        build_request(operation, args)
    message = str(exc_info.value)
    assert "other than flight_datetime_from, flight_datetime_to must be provided" in message
    assert "sort" not in message
    assert "limit" not in message
