"""
Test suite for result persistence.

System role: Verification of output copying into the results bucket
"""

from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
import pytest
import requests

from backend.boundary.aws.s3_client import S3ResultClient
from backend.boundary.storage.result_store import PassthroughResultStore, S3ResultStore
from backend.core.exceptions import ResultPersistenceError


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock(spec=S3ResultClient)
    client.bucket = "results-bucket"
    client.public_url.side_effect = lambda key: f"https://cdn.example.com/{key}"
    return client


@pytest.fixture
def http() -> MagicMock:
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.content = b"image-bytes"
    response.raise_for_status.return_value = None
    session.get.return_value = response
    return session


@pytest.fixture
def store(s3_client, http) -> S3ResultStore:
    return S3ResultStore(s3_client, key_prefix="results/", http=http)


class TestPassthroughResultStore:
    """Test suite for PassthroughResultStore."""

    async def test_returns_inference_urls(self) -> None:
        urls = ["https://replicate.delivery/1.png", "https://replicate.delivery/2.png"]

        assert await PassthroughResultStore().persist("job-1", "u1", urls, "png") == urls

    async def test_empty_outputs_rejected(self) -> None:
        with pytest.raises(ResultPersistenceError):
            await PassthroughResultStore().persist("job-1", "u1", [], "png")


class TestS3ResultStore:
    """Test suite for S3ResultStore.persist()."""

    async def test_copies_outputs_in_order(self, store, s3_client, http) -> None:
        # Act
        locators = await store.persist(
            "job-1",
            "user_123",
            ["https://replicate.delivery/a.png", "https://replicate.delivery/b.png"],
            "png",
        )

        # Assert
        assert locators == [
            "https://cdn.example.com/results/user_123/job-1/1.png",
            "https://cdn.example.com/results/user_123/job-1/2.png",
        ]
        assert [c.args[0] for c in http.get.call_args_list] == [
            "https://replicate.delivery/a.png",
            "https://replicate.delivery/b.png",
        ]
        s3_client.upload_bytes.assert_any_call("results/user_123/job-1/1.png", b"image-bytes", "image/png")

    async def test_owner_id_is_quoted_in_key(self, store) -> None:
        assert store.object_key("a/b c", "job-1", 1, "jpg") == "results/a%2Fb%20c/job-1/1.jpg"

    async def test_download_failure_raises(self, store, http, s3_client) -> None:
        http.get.side_effect = requests.ConnectionError("reset")

        with pytest.raises(ResultPersistenceError, match="download"):
            await store.persist("job-1", "u1", ["https://replicate.delivery/a.png"], "jpg")

        s3_client.upload_bytes.assert_not_called()

    async def test_upload_failure_raises(self, store, s3_client) -> None:
        s3_client.upload_bytes.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )

        with pytest.raises(ResultPersistenceError) as exc_info:
            await store.persist("job-1", "u1", ["https://replicate.delivery/a.png"], "jpg")

        assert exc_info.value.details["bucket"] == "results-bucket"

    async def test_empty_outputs_rejected(self, store) -> None:
        with pytest.raises(ResultPersistenceError):
            await store.persist("job-1", "u1", [], "jpg")


class TestS3ResultClient:
    """Test suite for S3ResultClient URL building and uploads."""

    @patch("backend.boundary.aws.s3_client.boto3")
    def test_public_url_defaults_to_virtual_hosted_s3(self, mock_boto3) -> None:
        client = S3ResultClient("results-bucket", region="eu-west-1")

        assert client.public_url("k/1.jpg") == "https://results-bucket.s3.eu-west-1.amazonaws.com/k/1.jpg"

    @patch("backend.boundary.aws.s3_client.boto3")
    def test_public_url_uses_configured_base(self, mock_boto3) -> None:
        client = S3ResultClient("results-bucket", public_base_url="https://cdn.example.com/")

        assert client.public_url("k/1.jpg") == "https://cdn.example.com/k/1.jpg"

    @patch("backend.boundary.aws.s3_client.boto3")
    def test_upload_bytes_puts_object(self, mock_boto3) -> None:
        client = S3ResultClient("results-bucket")

        client.upload_bytes("k/1.jpg", b"data", "image/jpeg")

        mock_boto3.client.return_value.put_object.assert_called_once_with(
            Bucket="results-bucket",
            Key="k/1.jpg",
            Body=b"data",
            ContentType="image/jpeg",
        )
