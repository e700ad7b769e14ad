"""S3 对象存储适配层测试

使用 botocore Stubber 模拟 MinIO/S3 响应，不依赖真实服务。
"""
import io

import boto3
import pytest
from boto3.s3.transfer import TransferConfig
from botocore.response import StreamingBody
from botocore.stub import Stubber

from imagevault.core.config import Settings
from imagevault.core.errors import StoreError, StoreWriteError
from imagevault.storage.object_store import ObjectStore, S3ObjectStore

BUCKET = "docker-images"
MB = 1024 * 1024


def _record_params(client, operation):
    """记录发往指定 S3 操作的请求参数"""
    calls = []
    client.meta.events.register(
        f"before-parameter-build.s3.{operation}", lambda params, **kwargs: calls.append(dict(params))
    )
    return calls


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        endpoint_url="http://localhost:9000",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


@pytest.fixture
def store(s3_client):
    return S3ObjectStore(
        bucket=BUCKET,
        endpoint_url="http://localhost:9000",
        access_key="test",
        secret_key="test",
        client=s3_client,
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestEnsureBucket:
    """bucket 初始化测试"""

    def test_existing_bucket_not_recreated(self, store, stubber):
        stubber.add_response("head_bucket", {}, {"Bucket": BUCKET})
        store.ensure_bucket()

    def test_missing_bucket_created(self, store, stubber):
        stubber.add_client_error(
            "head_bucket", service_error_code="404", http_status_code=404, expected_params={"Bucket": BUCKET}
        )
        stubber.add_response("create_bucket", {}, {"Bucket": BUCKET})
        store.ensure_bucket()

    def test_bucket_created_concurrently_is_fine(self, store, stubber):
        stubber.add_client_error("head_bucket", service_error_code="404", http_status_code=404)
        stubber.add_client_error("create_bucket", service_error_code="BucketAlreadyOwnedByYou", http_status_code=409)
        store.ensure_bucket()

    def test_forbidden_bucket_raises_store_error(self, store, stubber):
        stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
        with pytest.raises(StoreError):
            store.ensure_bucket()


class TestObjects:
    """对象读写测试"""

    def test_put_file(self, store, stubber, s3_client, tmp_path):
        path = tmp_path / "blob.tar"
        path.write_bytes(b"layer")
        sent = _record_params(s3_client, "PutObject")
        stubber.add_response("put_object", {})

        store.put_file("docker-1-abc-blob.tar", path, "application/x-tar")

        assert sent[0]["Bucket"] == BUCKET
        assert sent[0]["Key"] == "docker-1-abc-blob.tar"
        assert sent[0]["ContentType"] == "application/x-tar"

    def test_large_file_uses_multipart_upload(self, s3_client, stubber, tmp_path):
        """超过阈值的文件分片上传，不受单次 PUT 5 GB 上限限制"""
        store = S3ObjectStore(
            bucket=BUCKET,
            endpoint_url="http://localhost:9000",
            access_key="test",
            secret_key="test",
            client=s3_client,
            transfer_config=TransferConfig(
                multipart_threshold=5 * MB, multipart_chunksize=5 * MB, use_threads=False
            ),
        )
        path = tmp_path / "big.tar"
        path.write_bytes(b"\0" * (6 * MB))
        parts = _record_params(s3_client, "UploadPart")

        stubber.add_response("create_multipart_upload", {"Bucket": BUCKET, "Key": "big", "UploadId": "up-1"})
        stubber.add_response("upload_part", {"ETag": '"etag-1"'})
        stubber.add_response("upload_part", {"ETag": '"etag-2"'})
        stubber.add_response("complete_multipart_upload", {"Bucket": BUCKET, "Key": "big"})

        store.put_file("big", path)

        assert [p["PartNumber"] for p in parts] == [1, 2]

    def test_put_file_failure_raises_write_error(self, store, stubber, tmp_path):
        path = tmp_path / "blob.tar"
        path.write_bytes(b"layer")
        stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)
        with pytest.raises(StoreWriteError):
            store.put_file("k", path)

    def test_get_bytes(self, store, stubber):
        data = b"image content"
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(data), len(data))},
            {"Bucket": BUCKET, "Key": "k"},
        )
        assert store.get_bytes("k") == data

    def test_remove(self, store, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "k"})
        store.remove("k")

    def test_remove_failure_raises_store_error(self, store, stubber):
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StoreError):
            store.remove("k")

    def test_exists(self, store, stubber):
        stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": "present"})
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        assert store.exists("present") is True
        assert store.exists("absent") is False


class TestLocator:
    """locator 与对象 key 转换"""

    def test_locator_round_trip(self, store):
        locator = store.locator_for("docker-1700000000000-abc-app.tar")
        assert locator == "http://localhost:9000/docker-images/docker-1700000000000-abc-app.tar"
        assert ObjectStore.key_from_locator(locator) == "docker-1700000000000-abc-app.tar"

    def test_legacy_locator_with_encoded_name(self):
        """历史数据中 url 可能包含编码字符"""
        assert ObjectStore.key_from_locator("http://minio:9000/docker-images/docker-1-my%20app.tar") == "docker-1-my app.tar"

    def test_malformed_locator(self):
        with pytest.raises(StoreError):
            ObjectStore.key_from_locator("http://minio:9000/docker-images/")

    def test_public_url_from_settings(self):
        settings = Settings(MINIO_HOST="minio", MINIO_PORT=9000, MINIO_PUBLIC_URL="https://cdn.example.com/")
        store = S3ObjectStore.from_settings(settings)
        assert store.locator_for("k") == "https://cdn.example.com/docker-images/k"
