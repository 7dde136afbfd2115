from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber

from kyc_backend.core.errors import BlobStoreError, NotFoundError
from kyc_backend.services.blob_store import BlobStore

BUCKET = "id-documents-test"


@pytest.fixture
def s3():
    return boto3.client(
        "s3",
        region_name="us-east-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3):
    with Stubber(s3) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def blob_store(s3):
    return BlobStore(s3, BUCKET, url_expiration=900)


def test_upload_puts_object(blob_store, s3):
    s3.put_object = MagicMock(return_value={})
    blob_store.upload("ID_Documents/abc-front", b"jpeg-bytes", "image/jpeg", {"uploaded-by": "tester-1"})
    s3.put_object.assert_called_once_with(
        Bucket=BUCKET,
        Key="ID_Documents/abc-front",
        Body=b"jpeg-bytes",
        ContentType="image/jpeg",
        Metadata={"uploaded-by": "tester-1"},
    )


def test_upload_failure(blob_store, stubber):
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(BlobStoreError):
        blob_store.upload("ID_Documents/abc-front", b"jpeg-bytes", "image/jpeg")


def test_get_url_returns_presigned_url(blob_store, stubber):
    stubber.add_response("head_object", {})
    url = blob_store.get_url("ID_Documents/abc-selfie")
    assert "ID_Documents/abc-selfie" in url
    assert BUCKET in url


def test_get_url_missing_object(blob_store, stubber):
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
    with pytest.raises(NotFoundError):
        blob_store.get_url("ID_Documents/nobody-front")


def test_get_url_other_client_error(blob_store, stubber):
    stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)
    with pytest.raises(BlobStoreError):
        blob_store.get_url("ID_Documents/abc-front")


def test_transport_failure():
    s3 = MagicMock()
    s3.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")
    with pytest.raises(BlobStoreError):
        BlobStore(s3, BUCKET).get_url("ID_Documents/abc-front")
