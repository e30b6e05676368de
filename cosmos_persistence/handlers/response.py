"""
Response envelope for item commands.

The SDK returns bare documents; request charge, activity id and session
token only travel in the response headers. ``ResponseCapture`` is passed as
``response_hook=`` and turns those headers into an ``ItemResponse``.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..constants import (ACTIVITY_ID_HEADER, REQUEST_CHARGE_HEADER, SESSION_TOKEN_HEADER,
                         STATUS_OK)


@dataclass(frozen=True)
class ItemResponse:
    """
    Outcome of a single command.

    ``status_code`` is the code the service answered the write with; failed
    writes raise ``CosmosHttpResponseError`` instead of producing a response.
    """

    resource: Any
    status_code: int = STATUS_OK
    request_charge: float = 0.0
    activity_id: str | None = None
    session_token: str | None = None

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "success": self.success,
            "request_charge": self.request_charge,
            "activity_id": self.activity_id,
            "session_token": self.session_token,
        }


def parse_request_charge(headers: Mapping[str, Any] | None) -> float:
    """Read ``x-ms-request-charge`` as a float, 0.0 when absent or malformed."""
    if not headers:
        return 0.0
    try:
        return float(headers.get(REQUEST_CHARGE_HEADER) or 0.0)
    except (TypeError, ValueError):
        return 0.0


class ResponseCapture:
    """
    ``response_hook`` callable accumulating headers across calls.

    Query feeds invoke the hook once per page, so the request charge is
    summed while the other headers reflect the last response.
    """

    def __init__(self) -> None:
        self.headers: dict[str, Any] = {}
        self.request_charge = 0.0
        self.calls = 0

    def __call__(self, headers: Mapping[str, Any] | None, *args: Any) -> None:
        self.calls += 1
        self.request_charge += parse_request_charge(headers)
        if headers:
            self.headers = dict(headers)

    def to_response(self, resource: Any, status_code: int = STATUS_OK) -> ItemResponse:
        return ItemResponse(
            resource=resource,
            status_code=status_code,
            request_charge=self.request_charge,
            activity_id=self.headers.get(ACTIVITY_ID_HEADER),
            session_token=self.headers.get(SESSION_TOKEN_HEADER),
        )
