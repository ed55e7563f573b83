# fr24_client.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from errors import TransportError, UnexpectedError

logger = logging.getLogger("fr24.client")

FR24_BASE_URL = "https://fr24api.flightradar24.com/api"
FR24_API_VERSION = "v1"


class ResponseShape(str, Enum):
    LIST = "list"
    COUNT = "count"
    SINGLE = "single-object"


# --- Decoded results ---

@dataclass(frozen=True)
class Records:
    value: List[Any]

    @property
    def count(self) -> int:
        return len(self.value)


@dataclass(frozen=True)
class RecordCount:
    value: Dict[str, Any]

    @property
    def record_count(self) -> Union[int, float]:
        return self.value["record_count"]


@dataclass(frozen=True)
class SingleRecord:
    value: Dict[str, Any]


@dataclass(frozen=True)
class Unrecognized:
    """Body that does not match the shape the operation declared."""

    value: Any
    expected: ResponseShape


TypedResult = Union[Records, RecordCount, SingleRecord, Unrecognized]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _has_data_list(body: Any) -> bool:
    return isinstance(body, dict) and isinstance(body.get("data"), list)


def _has_record_count(body: Any) -> bool:
    return isinstance(body, dict) and _is_number(body.get("record_count"))


def decode_body(body: Any, shape: ResponseShape) -> TypedResult:
    """
    Extract the payload of an upstream body according to the expected shape.

    - LIST: `{"data": [...]}` -> the list, order preserved. A bare JSON array
      (flight tracks) is accepted as-is, and a single track object
      `{"fr24_id": ..., "tracks": [...]}` becomes a one-element list.
    - COUNT: `{"record_count": n}` -> the whole object.
    - SINGLE: any other JSON object -> the object.

    Anything else comes back as `Unrecognized` carrying the raw body.
    """
    shape = ResponseShape(shape)
    if shape is ResponseShape.LIST:
        if _has_data_list(body):
            return Records(body["data"])
        if isinstance(body, list):
            return Records(body)
        if isinstance(body, dict) and isinstance(body.get("tracks"), list):
            return Records([body])
    elif shape is ResponseShape.COUNT:
        if _has_record_count(body):
            return RecordCount(body)
    elif isinstance(body, dict) and not _has_data_list(body) and not _has_record_count(body):
        return SingleRecord(body)

    logger.warning("Unexpected response shape (expected %s): %.200r", shape.value, body)
    return Unrecognized(body, shape)


# --- Gateway ---

class FR24Client:
    """
    Thin authenticated GET gateway for the Flightradar24 API.
    One HTTP client per call: no pooling, retries or caching.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = FR24_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Accept-Version": FR24_API_VERSION,
            "Authorization": f"Bearer {self._api_key}",
        }

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Issue one GET and return the decoded JSON body.
        Raises TransportError for network, status and body failures, UnexpectedError otherwise.
        """
        url = f"{self.base_url}{endpoint}"
        logger.info("Making request to %s with params: %s", endpoint, dict(params or {}))
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url, params=params, headers=self.headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            cause = f"HTTP {exc.response.status_code} {exc.response.reason_phrase}".rstrip()
        except httpx.HTTPError as exc:
            cause = str(exc) or type(exc).__name__
        except ValueError as exc:
            cause = f"Malformed response body: {exc}"
        except Exception as exc:
            logger.exception("API request failed: %s", endpoint)
            raise UnexpectedError(f"Failed request to {endpoint}: Unknown error") from exc
        else:
            logger.debug("Response from %s: %s", endpoint, response.status_code)
            return body

        logger.error("API request failed: %s: %s", endpoint, cause)
        raise TransportError(endpoint, cause)

    async def fetch(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        shape: ResponseShape,
    ) -> TypedResult:
        body = await self.get(endpoint, params)
        return decode_body(body, shape)
