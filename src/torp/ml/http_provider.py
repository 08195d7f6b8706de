"""ML provider backed by a remote model server.

POSTs {"features": ..., "base_score": ...} as JSON and expects an
MLPrediction-shaped JSON body back.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from torp.ml.features import MLFeatures
from torp.ml.provider import MLPrediction, MLProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 2.0


class HttpMLProvider:
    """Remote model client.

    The engine bounds the whole call with its own timeout; the client
    timeout bounds each network operation.
    """

    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            endpoint_url: Prediction endpoint of the model server.
            timeout_seconds: Per-request timeout when no client is injected.
            http_client: Optional httpx.Client for dependency injection (testing).
        """
        if not endpoint_url:
            raise ValueError("endpoint_url must not be empty")
        self._endpoint_url = endpoint_url
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        """Request a prediction from the model server.

        Raises:
            MLProviderError: On transport errors, non-2xx responses, or a
                body that is not a valid prediction.
        """
        payload = {"features": features.model_dump(mode="json"), "base_score": base_score}
        data = self._post(payload)
        try:
            return MLPrediction.model_validate(data)
        except ValidationError as exc:
            raise MLProviderError(f"Invalid prediction from {self._endpoint_url}: {exc}") from exc

    def _post(self, payload: dict[str, Any]) -> Any:
        headers = {"Accept": "application/json"}
        client = self._http_client
        should_close = False
        if client is None:
            client = httpx.Client(timeout=self._timeout_seconds, headers=headers)
            should_close = True
        try:
            response = client.post(self._endpoint_url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "ML server returned %d for %s", exc.response.status_code, self._endpoint_url
            )
            raise MLProviderError(
                f"ML server returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("ML server request failed for %s: %s", self._endpoint_url, exc)
            raise MLProviderError(f"ML server request failed: {exc}") from exc
        except ValueError as exc:
            raise MLProviderError(f"ML server returned a non-JSON body: {exc}") from exc
        finally:
            if should_close:
                client.close()
