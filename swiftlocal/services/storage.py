import io, logging, secrets, string, time
from typing import Optional
from minio import Minio
from minio.error import S3Error
from swiftlocal.core.config import settings
from swiftlocal.core.errors import BackendFailure, StorageConflict

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits

def _endpoint() -> str:
    return settings.S3_ENDPOINT.replace('http://','').replace('https://','')

def _client() -> Minio:
    return Minio(_endpoint(), access_key=settings.S3_ACCESS_KEY, secret_key=settings.S3_SECRET_KEY, secure=settings.S3_SECURE)

def image_key(vendor_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """``{vendor_id}/{epoch_millis}-{random}.{ext}``"""
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    rand = ''.join(secrets.choice(_ALPHABET) for _ in range(10))
    return f"{vendor_id}/{ms}-{rand}.{ext}"

class ImageStore:
    def __init__(self, client: Optional[Minio] = None, bucket: Optional[str] = None):
        self.client = client or _client()
        self.bucket = bucket or settings.S3_BUCKET

    def ensure_bucket(self):
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)

    def exists(self, path: str) -> bool:
        try:
            self.client.stat_object(self.bucket, path)
            return True
        except S3Error as exc:
            if exc.code in ('NoSuchKey', 'NoSuchObject', 'ResourceNotFound'):
                return False
            raise

    def upload(self, path: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Store ``data`` at ``path``; existing keys are never overwritten."""
        try:
            self.ensure_bucket()
            if self.exists(path):
                raise StorageConflict(f"An object already exists at {path}")
            self.client.put_object(self.bucket, path, io.BytesIO(data), length=len(data), content_type=content_type)
        except S3Error as exc:
            logger.error("upload of %s failed: %s", path, exc)
            raise BackendFailure("Image storage unavailable") from exc
        logger.info("uploaded %s (%d bytes)", path, len(data))
        return path

    def public_url(self, path: str) -> str:
        scheme = 'https' if settings.S3_SECURE else 'http'
        return f"{scheme}://{_endpoint()}/{self.bucket}/{path}"
