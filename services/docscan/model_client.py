"""HTTP client for the hosted vision model (Gemini generateContent REST API).

Uses httpx with configurable timeouts. Calls are never retried; a failed
call surfaces to the user, who repeats the action.
"""

import logging

import httpx

from config import settings
from models import EncodedPayload

logger = logging.getLogger(__name__)


class MissingCredentialError(Exception):
    """No API key is configured; no request was sent."""


class ModelServiceError(Exception):
    """The model API call failed (connection error, timeout, non-200 status)."""


class ModelClient:
    """Thin transport around the model's generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model_id: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
    ):
        self._api_key = api_key
        self._base_url = (base_url or settings.MODEL_API_URL).rstrip("/")
        self._model_id = model_id or settings.MODEL_ID

        read_timeout = timeout if timeout is not None else settings.MODEL_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.MODEL_CONNECT_TIMEOUT

        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def api_key(self) -> str:
        # Read on every call so a key exported after startup is picked up.
        return self._api_key if self._api_key is not None else settings.API_KEY

    def close(self):
        self._client.close()

    def generate(
        self,
        payload: EncodedPayload,
        prompt: str,
        response_schema: dict | None = None,
    ) -> str:
        """Send the document and prompt to the model and return its raw text.

        Raises MissingCredentialError before any I/O when no key is set,
        ModelServiceError when the call itself fails.
        """
        api_key = self.api_key
        if not api_key:
            raise MissingCredentialError("API_KEY environment variable is not set.")

        generation_config: dict = {"responseMimeType": "application/json"}
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema

        body = {
            "contents": [
                {
                    "parts": [
                        {"inline_data": {"mime_type": payload.mime_type, "data": payload.data}},
                        {"text": prompt},
                    ]
                }
            ],
            "generationConfig": generation_config,
        }

        # Never log payload.data, only its size
        logger.info(
            "Calling model %s: mime=%s payload=%d chars",
            self._model_id, payload.mime_type, len(payload.data),
        )
        return self._send_generate(body, api_key)

    def _send_generate(self, body: dict, api_key: str) -> str:
        """Send a single generateContent request."""
        try:
            resp = self._client.post(
                f"/models/{self._model_id}:generateContent",
                json=body,
                headers={"x-goog-api-key": api_key},
            )
        except httpx.TimeoutException as e:
            logger.warning("Model API timeout: %s", e)
            raise ModelServiceError(f"Model API timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Model API HTTP error: %s", e)
            raise ModelServiceError(f"Model API HTTP error: {e}") from e

        if resp.status_code != 200:
            detail = _error_detail(resp)
            logger.error("Model API error %d: %s", resp.status_code, detail)
            raise ModelServiceError(detail)

        try:
            data = resp.json()
        except ValueError as e:
            raise ModelServiceError("Model API returned a non-JSON body") from e

        return _candidate_text(data)

    def health(self) -> dict:
        """Check that the configured model is reachable. Returns a status dict."""
        if not self.api_key:
            return {"status": "unconfigured", "model": self._model_id}
        try:
            resp = self._client.get(
                f"/models/{self._model_id}",
                headers={"x-goog-api-key": self.api_key},
                timeout=10.0,
            )
            if resp.status_code == 200:
                return {"status": "reachable", "model": self._model_id}
            return {"status": "error", "model": self._model_id, "error": _error_detail(resp)}
        except httpx.HTTPError as e:
            logger.warning("Model health check failed: %s", e)
            return {"status": "unreachable", "model": self._model_id, "error": str(e)}


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        error = body.get("error", {}) if isinstance(body, dict) else {}
        message = error.get("message") if isinstance(error, dict) else None
    except ValueError:
        message = None
    return message or f"HTTP {resp.status_code}"


def _candidate_text(data: dict) -> str:
    """Join the text parts of the first candidate; empty if there is none."""
    candidates = data.get("candidates") or []
    if not candidates:
        logger.warning("Model returned no candidates")
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)
