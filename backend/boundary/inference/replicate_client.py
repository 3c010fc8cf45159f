"""
Replicate predictions API client.

Runs one model version per call: creates a prediction, polls it until it
reaches a terminal state, and returns the output URLs. HTTP calls are
blocking (requests) and run in a worker thread so the event loop stays free.

Dependencies: requests, backend.configs
System role: External AI inference boundary
"""

import asyncio
import logging
import time
from typing import Any, Callable

import requests

from backend.configs.inference import InferenceSettings
from backend.core.exceptions import InferenceError

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset({"succeeded", "failed", "canceled"})


def normalize_output(output: Any) -> list[str]:
    """
    Flatten a prediction output into a list of URLs.

    Models return either a single URL or a list of URLs; anything else
    yields an empty list.
    """
    if output is None:
        return []
    if isinstance(output, str):
        return [output] if output else []
    if isinstance(output, (list, tuple)):
        return [item for item in output if isinstance(item, str) and item]
    return []


class ReplicateClient:
    """Thin client for https://api.replicate.com/v1/predictions."""

    def __init__(
        self,
        settings: InferenceSettings,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize client.

        Args:
            settings: Token, base URL, polling and timeout settings
            session: Optional pre-configured requests session
            sleep: Blocking sleep used between polls (injectable for tests)
            clock: Monotonic clock used for the timeout (injectable for tests)
        """
        self.settings = settings
        self._session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._base_url = settings.base_url.rstrip("/")

    async def run_model(self, version: str, model_input: dict[str, Any]) -> list[str]:
        """
        Run a model version to completion.

        Args:
            version: Replicate model version id
            model_input: Model input parameters

        Returns:
            list[str]: Output URLs (may be empty)

        Raises:
            InferenceError: On HTTP errors, failed/canceled predictions or timeout
        """
        return await asyncio.to_thread(self._run_sync, version, model_input)

    def _run_sync(self, version: str, model_input: dict[str, Any]) -> list[str]:
        if not self.settings.api_token:
            raise InferenceError("Replicate API token is not configured")

        started = self._clock()
        prediction = self._request(
            "POST",
            f"{self._base_url}/predictions",
            json={"version": version, "input": model_input},
        )
        prediction_id = prediction.get("id")
        logger.info(
            "Prediction created",
            extra={"prediction_id": prediction_id, "version": version[:12]},
        )

        while prediction.get("status") not in TERMINAL_STATES:
            if self._clock() - started > self.settings.timeout_seconds:
                self._cancel(prediction_id)
                raise InferenceError(
                    f"Prediction timed out after {self.settings.timeout_seconds:.0f}s",
                    details={"prediction_id": prediction_id},
                )
            self._sleep(self.settings.poll_interval_seconds)
            prediction = self._request("GET", f"{self._base_url}/predictions/{prediction_id}")

        status = prediction.get("status")
        if status != "succeeded":
            raise InferenceError(
                prediction.get("error") or f"Prediction {status}",
                details={"prediction_id": prediction_id, "status": status},
            )

        outputs = normalize_output(prediction.get("output"))
        logger.info(
            "Prediction succeeded",
            extra={
                "prediction_id": prediction_id,
                "outputs": len(outputs),
                "elapsed_s": round(self._clock() - started, 2),
            },
        )
        return outputs

    def _cancel(self, prediction_id: str | None) -> None:
        if not prediction_id:
            return
        try:
            self._request("POST", f"{self._base_url}/predictions/{prediction_id}/cancel")
        except InferenceError as e:
            logger.warning(
                "Failed to cancel timed out prediction",
                extra={"prediction_id": prediction_id, "error_msg": e.message},
            )

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.settings.api_token}",
            "Content-Type": "application/json",
        }
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                timeout=self.settings.request_timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as e:
            raise InferenceError(f"Inference service unreachable: {e}") from e

        if response.status_code >= 400:
            raise InferenceError(
                f"Inference service returned HTTP {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        try:
            return response.json()
        except ValueError as e:
            raise InferenceError("Inference service returned invalid JSON") from e

    def close(self) -> None:
        self._session.close()
