import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from .config import Settings

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 4
BODY_SNIPPET_CHARS = 250
LOW_QUOTA_WARNING = 50

RATE_LIMIT_HEADERS = {
    "remaining": "x-requests-remaining",
    "used": "x-requests-used",
    "last": "x-requests-last",
}


class OddsApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None,
                 headers: Optional[Dict[str, Optional[str]]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers or {}

    @property
    def retryable(self) -> bool:
        return self.status_code is not None and (self.status_code == 429 or self.status_code >= 500)


class ApiResponse(NamedTuple):
    data: Any
    headers: Dict[str, Optional[str]]


# Rate limits, server errors and network failures are worth another try.
# Every other 4xx means the request itself is wrong.
def is_retryable(exception: BaseException) -> bool:
    if isinstance(exception, (requests.ConnectionError, requests.Timeout)):
        return True
    return isinstance(exception, OddsApiError) and exception.retryable


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    headers = getattr(exc, "headers", {})
    logger.warning(
        f"[TheOddsAPI] attempt {retry_state.attempt_number} failed: {exc}. "
        f"Retrying in {retry_state.next_action.sleep:.2f}s {headers}"
    )


class OddsApiClient:
    """
    Wrapper for The Odds API v4.
    Handles retries with backoff, sessions, and url construction.
    """
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.api_key = settings.ODDS_API_KEY
        self.host = settings.ODDS_API_HOST.rstrip("/")
        self.session = session or requests.Session()
        # 0.5s, 1s, 2s between attempts, each plus up to 250ms of jitter
        self.retrying = Retrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=wait_exponential(multiplier=0.5, exp_base=2) + wait_random(0, 0.25),
            retry=retry_if_exception(is_retryable),
            sleep=sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

    def _get(self, endpoint: str, params: Dict[str, Any] = None) -> ApiResponse:
        if not self.api_key:
            raise OddsApiError("ODDS_API_KEY is not configured.")
        return self.retrying(self._get_once, endpoint, params)

    def _get_once(self, endpoint: str, params: Dict[str, Any] = None) -> ApiResponse:
        url = f"{self.host}{endpoint}"
        final_params = {"apiKey": self.api_key}
        if params:
            final_params.update(params)

        response = self.session.get(url, params=final_params, timeout=self.settings.ODDS_API_TIMEOUT)
        headers = {name: response.headers.get(h) for name, h in RATE_LIMIT_HEADERS.items()}

        if response.status_code >= 400:
            body = (response.text or "")[:BODY_SNIPPET_CHARS]
            if response.status_code == 401:
                logger.error("Invalid API Key.")
            raise OddsApiError(
                f"[TheOddsAPI] HTTP {response.status_code} {getattr(response, 'reason', '') or ''} - {body}",
                status_code=response.status_code,
                headers=headers,
            )

        remaining = headers["remaining"]
        if remaining is not None:
            try:
                if float(remaining) < LOW_QUOTA_WARNING:
                    logger.warning(f"Low API quota remaining: {remaining}")
            except ValueError:
                logger.debug(f"Unparseable x-requests-remaining header: {remaining!r}")

        return ApiResponse(response.json(), headers)

    def get_events(self) -> List[Dict]:
        """List upcoming events for the configured sport."""
        endpoint = f"/v4/sports/{self.settings.SPORT_KEY}/events"
        resp = self._get(endpoint, {"dateFormat": "iso"})
        if not isinstance(resp.data, list):
            raise OddsApiError(f"Unexpected events response (expected list, got {type(resp.data).__name__}).")
        logger.info(f"Fetched {len(resp.data)} events for {self.settings.SPORT_KEY}")
        return resp.data

    def get_event_odds(self, event_id: str) -> ApiResponse:
        """Fetch alternate player-prop odds for a single event."""
        endpoint = f"/v4/sports/{self.settings.SPORT_KEY}/events/{event_id}/odds"
        params = {
            "regions": ",".join(self.settings.regions),
            "markets": ",".join(self.settings.markets),
            "oddsFormat": "american",
            "dateFormat": "iso",
        }
        if self.settings.bookmakers:
            params["bookmakers"] = ",".join(self.settings.bookmakers)
        return self._get(endpoint, params)
