"""
Test suite for the Replicate predictions client.

HTTP is mocked at the requests.Session level; sleep and clock are injected
so polling and timeouts run instantly.

System role: Verification of the external inference boundary
"""

from unittest.mock import MagicMock

import pytest
import requests

from backend.boundary.inference.replicate_client import ReplicateClient, normalize_output
from backend.configs.inference import InferenceSettings
from backend.core.exceptions import InferenceError


def make_response(payload=None, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = str(payload)
    response.json.return_value = payload
    return response


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(session, clock, inference_settings) -> ReplicateClient:
    def sleep(seconds: float) -> None:
        clock.now += 1

    return ReplicateClient(inference_settings, session=session, sleep=sleep, clock=clock)


class TestNormalizeOutput:
    """Test suite for normalize_output()."""

    def test_single_url(self) -> None:
        assert normalize_output("https://x/1.png") == ["https://x/1.png"]

    def test_list_of_urls(self) -> None:
        assert normalize_output(["https://x/1.png", "", None, "https://x/2.png"]) == [
            "https://x/1.png",
            "https://x/2.png",
        ]

    @pytest.mark.parametrize("output", [None, "", {"url": "x"}, 42])
    def test_unusable_output(self, output) -> None:
        assert normalize_output(output) == []


class TestReplicateClientRunModel:
    """Test suite for ReplicateClient.run_model()."""

    async def test_polls_until_succeeded(self, client, session) -> None:
        # Arrange
        session.request.side_effect = [
            make_response({"id": "p1", "status": "starting"}),
            make_response({"id": "p1", "status": "processing"}),
            make_response({"id": "p1", "status": "succeeded", "output": ["https://x/1.png"]}),
        ]

        # Act
        outputs = await client.run_model("v1", {"image": "https://example.com/a.jpg"})

        # Assert
        assert outputs == ["https://x/1.png"]
        create_call = session.request.call_args_list[0]
        assert create_call.args == ("POST", "https://api.replicate.com/v1/predictions")
        assert create_call.kwargs["json"] == {"version": "v1", "input": {"image": "https://example.com/a.jpg"}}
        assert create_call.kwargs["headers"]["Authorization"] == "Bearer test-token"
        poll_call = session.request.call_args_list[1]
        assert poll_call.args == ("GET", "https://api.replicate.com/v1/predictions/p1")

    async def test_immediate_success_skips_polling(self, client, session) -> None:
        session.request.return_value = make_response(
            {"id": "p1", "status": "succeeded", "output": "https://x/1.png"}
        )

        outputs = await client.run_model("v1", {})

        assert outputs == ["https://x/1.png"]
        assert session.request.call_count == 1

    async def test_failed_prediction_raises_with_provider_error(self, client, session) -> None:
        session.request.side_effect = [
            make_response({"id": "p1", "status": "processing"}),
            make_response({"id": "p1", "status": "failed", "error": "CUDA out of memory"}),
        ]

        with pytest.raises(InferenceError, match="CUDA out of memory"):
            await client.run_model("v1", {})

    async def test_canceled_prediction_raises(self, client, session) -> None:
        session.request.return_value = make_response({"id": "p1", "status": "canceled"})

        with pytest.raises(InferenceError) as exc_info:
            await client.run_model("v1", {})

        assert exc_info.value.details["status"] == "canceled"

    async def test_timeout_cancels_prediction(self, session, clock) -> None:
        settings = InferenceSettings(api_token="test-token", timeout_seconds=3, poll_interval_seconds=0.0)

        def sleep(seconds: float) -> None:
            clock.now += 2

        client = ReplicateClient(settings, session=session, sleep=sleep, clock=clock)
        session.request.return_value = make_response({"id": "p1", "status": "processing"})

        with pytest.raises(InferenceError, match="timed out"):
            await client.run_model("v1", {})

        last_call = session.request.call_args_list[-1]
        assert last_call.args == ("POST", "https://api.replicate.com/v1/predictions/p1/cancel")

    async def test_http_error_raises(self, client, session) -> None:
        session.request.return_value = make_response({"detail": "Invalid version"}, status_code=422)

        with pytest.raises(InferenceError) as exc_info:
            await client.run_model("v1", {})

        assert exc_info.value.details["status_code"] == 422

    async def test_connection_error_raises(self, client, session) -> None:
        session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(InferenceError, match="unreachable"):
            await client.run_model("v1", {})

    async def test_invalid_json_raises(self, client, session) -> None:
        response = make_response()
        response.json.side_effect = ValueError("not json")
        session.request.return_value = response

        with pytest.raises(InferenceError, match="invalid JSON"):
            await client.run_model("v1", {})

    async def test_missing_token_fails_without_calling_api(self, session) -> None:
        client = ReplicateClient(InferenceSettings(api_token=None), session=session)

        with pytest.raises(InferenceError, match="token"):
            await client.run_model("v1", {})

        session.request.assert_not_called()
