from __future__ import annotations
import io
from pathlib import Path
from minio import Minio
from minio.error import S3Error
from spreehunt.config import settings
from spreehunt.errors import StoreError

def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure

_client: Minio | None = None

def _s3() -> Minio:
    global _client
    if _client is None:
        host, secure = _parse_endpoint(settings.s3_endpoint)
        _client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
        try:
            if not _client.bucket_exists(settings.s3_bucket_submissions):
                _client.make_bucket(settings.s3_bucket_submissions)
        except S3Error as e:
            # a concurrent make_bucket is fine
            if e.code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise
    return _client

def submission_key(message_id: int, file_path: str) -> str:
    return f"{message_id}_{file_path.replace('/', '_')}"

def put_bytes(key: str, data: bytes, content_type: str) -> None:
    """Persist media under `key` in the configured backend (local directory or S3 bucket)."""
    try:
        if settings.media_backend == "s3":
            _s3().put_object(
                settings.s3_bucket_submissions, key, io.BytesIO(data), length=len(data), content_type=content_type
            )
            return
        root = Path(settings.submissions_dir)
        root.mkdir(parents=True, exist_ok=True)
        (root / key).write_bytes(data)
    except (S3Error, OSError) as e:
        raise StoreError() from e

def get_bytes(key: str) -> bytes:
    if settings.media_backend == "s3":
        try:
            response = _s3().get_object(settings.s3_bucket_submissions, key)
            return response.read()
        except S3Error as e:
            if e.code == "NoSuchKey":
                raise FileNotFoundError(f"Object not found: {key}")
            raise
    return (Path(settings.submissions_dir) / key).read_bytes()
