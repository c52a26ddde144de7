"""
Errors of the read-only K8s API calls: listing and watching.

Only the statuses that change the mirror's behaviour get their own classes:
the expired resource version (410 Gone) makes the driving loop re-list,
and the auth-related ones (401, 403) and the absent resources (404) are
the usual reasons to stop with a meaningful message. Everything else is
an `APIError` with the status & the payload as its fields.

Networking & SSL errors of ``aiohttp`` are not wrapped: they are not
about the API. When an API error is raised, aiohttp's response error
is kept as its cause.
"""
import collections.abc
import json
from typing import Any, Mapping, Optional, Type

import aiohttp
from typing_extensions import Literal, TypedDict

HTTP_GONE_CODE = 410


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.19/#status-v1-meta
class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str
    details: Mapping[str, Any]


class APIError(Exception):
    """
    A failed API call, with the HTTP status and the ``Status`` payload (if any).

    The payload's fields are also available as properties; they are ``None``
    if the server sent no payload or something other than a ``Status``.
    """

    def __init__(self, payload: Optional[RawStatus], *, status: int) -> None:
        super().__init__(payload.get('message') if payload else None, payload)
        self.status = status
        self.payload = payload

    def _field(self, name: str) -> Any:
        return self.payload.get(name) if self.payload else None

    @property
    def code(self) -> Optional[int]:
        return self._field('code')

    @property
    def reason(self) -> Optional[str]:
        return self._field('reason')

    @property
    def message(self) -> Optional[str]:
        return self._field('message')

    @property
    def details(self) -> Optional[Mapping[str, Any]]:
        return self._field('details')


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIGoneError(APIError):
    pass


class APIMalformedError(Exception):
    """
    Raised when a line of the watch-stream is not a valid JSON document.

    The line itself is not included: it can contain sensitive data.
    """

    def __init__(self, length: int) -> None:
        super().__init__(f"Malformed line in the watch-stream ({length} bytes).")
        self.length = length


_ERROR_CLASSES: Mapping[int, Type[APIError]] = {
    401: APIUnauthorizedError,
    403: APIForbiddenError,
    404: APINotFoundError,
    HTTP_GONE_CODE: APIGoneError,
}


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Check for specialised K8s errors, and raise with extended information.
    """
    if response.status >= 400:

        # The body is unreadable after raise_for_status(), so get the status first.
        payload: Optional[RawStatus]
        try:
            payload = await response.json()
        except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
            payload = None

        # Anything but a Status can contain the objects' data; never keep it in the errors.
        if not isinstance(payload, collections.abc.Mapping) or payload.get('kind') != 'Status':
            payload = None

        cls = _ERROR_CLASSES.get(response.status, APIError)

        # Chain aiohttp's error as the cause.
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError as e:
            raise cls(payload, status=response.status) from e
