import re
from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from docgen.app.config import Settings
from docgen.app.errors import PersistFailed
from docgen.app.storage.blob_store import S3DocumentStore, build_document_store
from docgen.app.templates.address import classify
from docgen.tests.helpers import FakeS3Client


def _fixed_now():
    return datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "20240102T030405-abc.pdf"
    path.write_bytes(b"%PDF-1.7 test")
    return path


def test_persist_uploads_under_date_partitioned_key(artifact):
    s3 = FakeS3Client()
    store = S3DocumentStore(s3, "documents", prefix="generated-documents", now=_fixed_now)

    location = store.persist(artifact)

    (upload,) = s3.uploads
    assert re.fullmatch(
        r"generated-documents/2024/01/02/20240102T030405-abc-[0-9a-f-]{36}\.pdf",
        upload["key"],
    )
    assert location == f"blob@documents:{upload['key']}"
    assert s3.objects[("documents", upload["key"])] == b"%PDF-1.7 test"

    extra = upload["extra_args"]
    assert extra["ContentType"] == "application/pdf"
    assert extra["Metadata"]["original-filename"] == artifact.name
    assert extra["Metadata"]["file-size"] == str(len(b"%PDF-1.7 test"))
    assert extra["Metadata"]["upload-timestamp"] == _fixed_now().isoformat()


def test_persisted_location_is_a_resolvable_blob_address(artifact):
    location = S3DocumentStore(FakeS3Client(), "documents").persist(artifact)

    parsed = classify(location)
    assert parsed.scheme == "blob"
    assert parsed.split_authority()[0] == "documents"


def test_transient_failures_are_retried(artifact):
    s3 = FakeS3Client(upload_failures=2)

    S3DocumentStore(s3, "documents").persist(artifact)

    assert s3.upload_attempts == 3
    assert len(s3.uploads) == 1


def test_persistent_failure_raises_persist_failed(artifact):
    s3 = FakeS3Client(upload_failures=10)

    with pytest.raises(PersistFailed):
        S3DocumentStore(s3, "documents").persist(artifact)

    assert s3.upload_attempts == 3


def test_access_denied_from_real_client_becomes_persist_failed(artifact):
    s3 = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    stubber = Stubber(s3)
    for _ in range(3):
        stubber.add_client_error(
            "put_object", service_error_code="AccessDenied", http_status_code=403
        )

    with stubber, pytest.raises(PersistFailed) as exc_info:
        S3DocumentStore(s3, "documents").persist(artifact)

    assert "AccessDenied" in str(exc_info.value)
    stubber.assert_no_pending_responses()


def test_missing_artifact(tmp_path):
    with pytest.raises(PersistFailed):
        S3DocumentStore(FakeS3Client(), "documents").persist(tmp_path / "absent.pdf")


def test_no_documents_bucket_means_no_store(tmp_path):
    assert build_document_store(Settings(), FakeS3Client()) is None

    store = build_document_store(
        Settings(documents_bucket="documents", documents_prefix="/out/"),
        FakeS3Client(),
    )
    assert store.bucket == "documents"
    assert store.prefix == "out"
