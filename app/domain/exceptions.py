"""
Domain exception taxonomy.

Every error raised by the service derives from ``FarmDataError`` and carries
the HTTP status the error handling middleware responds with.
"""
from typing import Any, Dict, Optional


class FarmDataError(Exception):
    """Base exception for all farm data errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidInput(FarmDataError):
    """Missing or malformed farm id, coordinates or payload."""

    status_code = 400


class FarmNotFound(FarmDataError):
    """No document is stored for the requested farm."""

    status_code = 404

    def __init__(self, farm_id: str):
        self.farm_id = farm_id
        super().__init__(f"No data stored for farm '{farm_id}'")


class SourceUnavailable(FarmDataError):
    """A single upstream data source could not be fetched."""

    status_code = 502

    def __init__(
        self,
        source: str,
        message: str,
        upstream_status: Optional[int] = None,
    ):
        self.source = source
        self.upstream_status = upstream_status
        super().__init__(f"{source}: {message}")


class AllSourcesFailed(FarmDataError):
    """Every attempted data source failed for an aggregate request."""

    status_code = 502

    def __init__(self, failures: Dict[str, str]):
        self.failures = failures
        sources = ", ".join(sorted(failures))
        super().__init__(f"All data sources failed ({sources})")


class PersistenceFailure(FarmDataError):
    """
    Writing to the document store failed.

    The already computed result travels with the error so callers can still
    return it.
    """

    status_code = 500

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)
