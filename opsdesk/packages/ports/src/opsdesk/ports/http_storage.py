"""HttpPhotoStorage -- 通过 HTTP multipart 上传照片到托管服务

兼容 Cloudinary 风格的 unsigned upload：POST file + upload_preset，
响应 JSON 中的 secure_url（或 url）即照片地址。
"""

import httpx
import structlog

from .exceptions import StorageUploadError
from .models import PhotoMetadata

log = structlog.get_logger()

_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.TimeoutException,
)


class HttpPhotoStorage:
    """ObjectStorage 的 HTTP 上传实现"""

    def __init__(
        self,
        upload_url: str,
        upload_preset: str = "",
        timeout_s: int = 15,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            upload_url: 上传端点
            upload_preset: 上传预设
            timeout_s: 请求超时（秒）
            http_client: 可注入的 httpx 客户端，None 时每次调用临时创建
        """
        self._upload_url = upload_url
        self._upload_preset = upload_preset
        self._timeout_s = timeout_s
        self._http_client = http_client

    async def upload(self, content: bytes, metadata: PhotoMetadata) -> str:
        data = {"folder": metadata.category}
        if self._upload_preset:
            data["upload_preset"] = self._upload_preset
        files = {"file": (metadata.filename, content, metadata.mime)}

        try:
            if self._http_client is not None:
                resp = await self._http_client.post(
                    self._upload_url, data=data, files=files, timeout=self._timeout_s
                )
            else:
                async with httpx.AsyncClient() as http_client:
                    resp = await http_client.post(
                        self._upload_url, data=data, files=files, timeout=self._timeout_s
                    )
        except _CONNECTION_ERROR_TYPES as e:
            log.error("photo_upload_unreachable", url=self._upload_url, error=str(e))
            raise StorageUploadError(self._upload_url, e) from e

        if resp.status_code >= 400:
            log.error(
                "photo_upload_rejected",
                url=self._upload_url,
                status_code=resp.status_code,
            )
            raise StorageUploadError(self._upload_url, f"HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise StorageUploadError(self._upload_url, "invalid JSON response") from e

        url = body.get("secure_url") or body.get("url")
        if not url:
            raise StorageUploadError(self._upload_url, "response has no url")

        log.info("photo_uploaded", category=metadata.category, entity_id=metadata.entity_id)
        return url
