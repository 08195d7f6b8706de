"""Tests for HttpMLProvider using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from tests.fixtures.synthetic import FULL_ENRICHMENT, SYNTHETIC_QUOTE
from torp.ml.features import MLFeatures, extract_features
from torp.ml.http_provider import HttpMLProvider
from torp.ml.provider import MLProvider, MLProviderError
from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote

_ENDPOINT = "https://ml.example.test/v1/predict"


def _make_features() -> MLFeatures:
    return extract_features(
        Quote.model_validate(SYNTHETIC_QUOTE), EnrichmentBundle.model_validate(FULL_ENRICHMENT)
    )


def _make_provider(handler: httpx.MockTransport) -> HttpMLProvider:
    return HttpMLProvider(_ENDPOINT, http_client=httpx.Client(transport=handler))


class TestHttpMLProvider:
    """Request shape, response parsing and error mapping."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(HttpMLProvider(_ENDPOINT), MLProvider)

    def test_empty_endpoint_rejected(self) -> None:
        with pytest.raises(ValueError, match="endpoint_url"):
            HttpMLProvider("")

    def test_successful_prediction(self) -> None:
        seen: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert str(request.url) == _ENDPOINT
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "predicted_score": 910.0,
                    "confidence": 0.8,
                    "adjustments": {"price": -5.0},
                    "feature_importance": {"total_amount": 0.4},
                },
            )

        provider = _make_provider(httpx.MockTransport(handler))
        prediction = provider.predict(_make_features(), 880.0)

        assert prediction.predicted_score == 910.0
        assert prediction.confidence == 0.8
        assert prediction.adjustments == {"price": -5.0}
        body = seen[0]
        assert body["base_score"] == 880.0
        features = body["features"]
        assert isinstance(features, dict)
        assert features["total_amount"] == 12000.0
        assert features["project_size"] == "small"

    def test_server_error_raises(self) -> None:
        provider = _make_provider(
            httpx.MockTransport(lambda request: httpx.Response(503, text="unavailable"))
        )
        with pytest.raises(MLProviderError, match="HTTP 503"):
            provider.predict(_make_features(), 880.0)

    def test_invalid_prediction_raises(self) -> None:
        provider = _make_provider(
            httpx.MockTransport(
                lambda request: httpx.Response(200, json={"predicted_score": 5000, "confidence": 2})
            )
        )
        with pytest.raises(MLProviderError, match="Invalid prediction"):
            provider.predict(_make_features(), 880.0)

    def test_non_json_body_raises(self) -> None:
        provider = _make_provider(
            httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        )
        with pytest.raises(MLProviderError, match="non-JSON"):
            provider.predict(_make_features(), 880.0)

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _make_provider(httpx.MockTransport(handler))
        with pytest.raises(MLProviderError, match="request failed"):
            provider.predict(_make_features(), 880.0)
