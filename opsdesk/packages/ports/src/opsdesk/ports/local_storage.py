"""LocalPhotoStorage -- 本地文件系统照片存储

按内容 SHA-256 命名，同一内容重复上传得到同一 URL。
"""

import hashlib
import mimetypes
from pathlib import Path

import structlog

from .exceptions import StorageUploadError
from .models import PhotoMetadata

log = structlog.get_logger()


def compute_hash_and_size(content: bytes) -> tuple[str, int]:
    """计算 SHA-256 hash 和内容大小

    Args:
        content: 原始内容字节

    Returns:
        (sha256_hex, size_bytes) 元组
    """
    return hashlib.sha256(content).hexdigest(), len(content)


def _extension_for(metadata: PhotoMetadata) -> str:
    suffix = Path(metadata.filename).suffix.lower()
    if suffix:
        return suffix
    return mimetypes.guess_extension(metadata.mime) or ".bin"


class LocalPhotoStorage:
    """ObjectStorage 的本地文件系统实现"""

    def __init__(self, photos_dir: Path, base_url: str = "/photos") -> None:
        self._photos_dir = Path(photos_dir)
        self._base_url = base_url.rstrip("/")

    @property
    def photos_dir(self) -> Path:
        return self._photos_dir

    async def upload(self, content: bytes, metadata: PhotoMetadata) -> str:
        """写入 {photos_dir}/{category}/{sha256}{ext}，返回对应 URL"""
        if not content:
            raise StorageUploadError(str(self._photos_dir), "empty content")

        hash_hex, size = compute_hash_and_size(content)
        relative = f"{metadata.category}/{hash_hex}{_extension_for(metadata)}"
        file_path = self._photos_dir / relative
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            if not file_path.exists():
                file_path.write_bytes(content)
        except OSError as e:
            raise StorageUploadError(str(self._photos_dir), e) from e

        log.debug(
            "photo_stored",
            category=metadata.category,
            entity_id=metadata.entity_id,
            size=size,
            path=str(file_path),
        )
        return f"{self._base_url}/{relative}"
