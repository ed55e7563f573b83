# errors.py
import logging
from dataclasses import dataclass

logger = logging.getLogger("fr24.errors")

VALIDATION = "validation"
TRANSPORT = "transport"
UNEXPECTED = "unexpected"


class FR24Error(Exception):
    """Base class for every failure surfaced by the gateway."""

    kind = UNEXPECTED


class ValidationError(FR24Error):
    """Arguments rejected locally. Never sent upstream."""

    kind = VALIDATION


class TransportError(FR24Error):
    """Network, non-2xx or malformed body failure for one endpoint."""

    kind = TRANSPORT

    def __init__(self, endpoint: str, cause: str):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Failed request to {endpoint}: {cause}")


class UnexpectedError(FR24Error):
    kind = UNEXPECTED


@dataclass(frozen=True)
class FailureReport:
    operation: str
    cause: str
    kind: str

    @property
    def message(self) -> str:
        return f"Error in {self.operation}: {self.cause}"


def classify(operation: str, exc: BaseException) -> FailureReport:
    """
    Convert any failure raised while running an operation into a FailureReport.
    Gateway and validation errors keep their own message; anything else is
    reported as "Unknown error" and logged with its traceback.
    """
    if isinstance(exc, FR24Error) and str(exc):
        logger.error("%s failed (%s): %s", operation, exc.kind, exc)
        return FailureReport(operation=operation, cause=str(exc), kind=exc.kind)
    logger.error("%s failed unexpectedly", operation, exc_info=exc)
    return FailureReport(operation=operation, cause="Unknown error", kind=UNEXPECTED)
