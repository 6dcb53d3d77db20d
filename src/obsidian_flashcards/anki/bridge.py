"""HTTP bridge to the AnkiConnect add-on."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Literal

import httpx

from obsidian_flashcards.anki.requests import (
    ANKI_CONNECT_VERSION,
    AnkiRequest,
    VersionRequest,
)
from obsidian_flashcards.error_codes import ErrorCode
from obsidian_flashcards.exceptions import AnkiConnectError
from obsidian_flashcards.utils.logging import get_logger
from obsidian_flashcards.utils.retry import retry

logger = get_logger(__name__)


@dataclass(frozen=True)
class BridgeResult:
    """Outcome of one item of a bulk call."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AnkiBridge:
    """Sends AnkiConnect requests over HTTP.

    ``send`` performs one action and raises on any failure. ``send_multi``
    bundles several actions into one ``multi`` call and reports a
    ``BridgeResult`` per action, so a rejected note does not fail the batch.
    Transport failures are retried with exponential backoff and then raised
    as ``AnkiConnectError``.
    """

    def __init__(
        self,
        url: str = "http://127.0.0.1:8765",
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_initial_delay: float = 1.0,
        client: httpx.Client | None = None,
    ):
        """
        Initialize the bridge.

        Args:
            url: AnkiConnect URL
            timeout: Request timeout in seconds
            max_attempts: Attempts per request on transport failures
            retry_initial_delay: Delay before the first retry in seconds
            client: Optional pre-configured httpx client
        """
        self.url = url
        self.session = client or httpx.Client(timeout=timeout)
        self._post = retry(
            max_attempts=max_attempts,
            initial_delay=retry_initial_delay,
            backoff_factor=2.0,
            exceptions=(httpx.TransportError,),
        )(self._post_once)

        logger.debug(
            "anki_bridge_initialized",
            url=url,
            timeout=timeout,
            max_attempts=max_attempts,
        )

    def _post_once(self, payload: dict[str, Any]) -> httpx.Response:
        response = self.session.post(self.url, json=payload)
        response.raise_for_status()
        return response

    def _invoke(self, payload: dict[str, Any]) -> Any:
        """POST a payload and return the ``result`` of the envelope."""
        action = payload.get("action")
        logger.debug("anki_invoke", action=action)

        try:
            response = self._post(payload)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            msg = f"Connection error to AnkiConnect: {e}"
            raise AnkiConnectError(
                msg,
                suggestion=(
                    "Ensure Anki is running with the AnkiConnect add-on "
                    f"listening at {self.url}"
                ),
                error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
                context={"action": action},
            ) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP {e.response.status_code} from AnkiConnect: {e}"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_PROTOCOL_ERROR.value,
                context={"action": action},
            ) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error calling AnkiConnect: {e}"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
                context={"action": action},
            ) from e

        try:
            result = response.json()
        except ValueError as e:
            msg = f"Invalid JSON response: {e}"
            raise AnkiConnectError(
                msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value
            ) from e

        if not isinstance(result, dict):
            msg = f"Invalid response type: expected dict, got {type(result).__name__}"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)

        if "error" not in result and "result" not in result:
            msg = f"Malformed response: missing error/result fields in {result}"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)

        if result.get("error") is not None:
            msg = f"AnkiConnect error: {result['error']}"
            raise AnkiConnectError(
                msg,
                error_code=ErrorCode.ANK_PROTOCOL_ERROR.value,
                context={"action": action},
            )

        return result.get("result")

    def send(self, request: AnkiRequest) -> Any:
        """Send one request and return its parsed result.

        Raises:
            AnkiConnectError: On transport, HTTP, JSON or AnkiConnect errors
        """
        return request.parse_result(self._invoke(request.to_payload()))

    def send_multi(self, requests: Sequence[AnkiRequest]) -> list[BridgeResult]:
        """Send requests in one ``multi`` call.

        Results are positionally aligned with ``requests``. Per-action
        failures come back as ``BridgeResult.error``; only a failure of the
        call as a whole raises.

        Raises:
            AnkiConnectError: If the call itself fails
        """
        if not requests:
            return []

        payload = {
            "action": "multi",
            "version": ANKI_CONNECT_VERSION,
            "params": {"actions": [request.to_payload() for request in requests]},
        }
        raw_results = self._invoke(payload)

        if not isinstance(raw_results, list):
            msg = f"multi returned {type(raw_results).__name__}, expected list"
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)
        if len(raw_results) != len(requests):
            msg = (
                f"multi returned {len(raw_results)} results "
                f"for {len(requests)} actions"
            )
            raise AnkiConnectError(msg, error_code=ErrorCode.ANK_PROTOCOL_ERROR.value)

        results: list[BridgeResult] = []
        for request, raw in zip(requests, raw_results, strict=True):
            if isinstance(raw, dict) and ("error" in raw or "result" in raw):
                error = raw.get("error")
                if error is not None:
                    results.append(BridgeResult(error=str(error)))
                    continue
                raw = raw.get("result")
            try:
                results.append(BridgeResult(value=request.parse_result(raw)))
            except AnkiConnectError as e:
                results.append(BridgeResult(error=e.message))

        failed = sum(1 for result in results if not result.ok)
        logger.debug(
            "anki_multi_completed",
            actions=len(requests),
            failed=failed,
        )
        return results

    def check_connection(self) -> int:
        """Return the AnkiConnect API version, raising when unreachable."""
        version = self.send(VersionRequest())
        logger.info("anki_connectivity_verified", url=self.url, version=version)
        return version

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        logger.debug("anki_bridge_closed", url=self.url)

    def __enter__(self) -> AnkiBridge:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False
