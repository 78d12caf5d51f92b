"""Access to the remote monitor API."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import requests

logger = logging.getLogger(__name__)

MONITOR_PATH = "/api/monitor"
SUCCESS_CODE = 0

# A fetch capability takes the optional auth key and returns the decoded
# response envelope, raising on any transport failure.
FetchFn = Callable[[str | None], Any]


class TransportError(Exception):
    """The monitor API could not be reached or answered with garbage."""


class ResultKind(Enum):
    """Outcome of one fetch at the transport boundary."""

    OK = "ok"
    SKIP = "skip"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class FetchResult:
    """Tagged result of one fetch: Ok(data), Skip(code) or Error(reason)."""

    kind: ResultKind
    data: Mapping[str, Any] | None = None
    code: int | None = None
    reason: str = ""

    @classmethod
    def ok(cls, data: Mapping[str, Any]) -> "FetchResult":
        return cls(ResultKind.OK, data=data, code=SUCCESS_CODE)

    @classmethod
    def skip(cls, code: int) -> "FetchResult":
        return cls(ResultKind.SKIP, code=code)

    @classmethod
    def error(cls, reason: str) -> "FetchResult":
        return cls(ResultKind.ERROR, reason=reason)


def classify(envelope: Any) -> FetchResult:
    """
    Classify a decoded ``{code, data}`` envelope.

    ``code == 0`` carries a snapshot; any other integer code means the server
    has nothing to show this cycle. Anything that is not such an envelope is
    an error.
    """
    if not isinstance(envelope, Mapping):
        return FetchResult.error(f"Unexpected response type {type(envelope).__name__}")

    code = envelope.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        return FetchResult.error(f"Response has no integer status code: {code!r}")
    if code != SUCCESS_CODE:
        return FetchResult.skip(code)

    data = envelope.get("data")
    if not isinstance(data, Mapping):
        return FetchResult.error("Response has no snapshot data")
    return FetchResult.ok(data)


class HttpFetcher:
    """
    Fetch capability that GETs the monitor endpoint of a remote service.

    The auth key is sent verbatim in the ``Authorization`` header. Any
    request failure, HTTP error status or undecodable body is raised as
    TransportError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + MONITOR_PATH
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    @property
    def url(self) -> str:
        return self._url

    def __call__(self, auth_key: str | None = None) -> Any:
        headers = {"Authorization": auth_key} if auth_key else {}
        try:
            response = self._session.get(self._url, headers=headers, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.debug("GET %s failed: %s", self._url, exc)
            raise TransportError(f"GET {self._url} failed: {exc}") from exc

    def close(self) -> None:
        """Close the HTTP session if this fetcher created it."""
        if self._owns_session:
            self._session.close()
