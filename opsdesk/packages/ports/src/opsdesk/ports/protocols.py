"""外部能力端口 Protocol 定义

两个端口都是无状态的，可被多个 adapter 并发调用。
"""

from typing import Protocol

from .models import DeliveryReceipt, EmailMessage, PhotoMetadata


class ObjectStorage(Protocol):
    """照片对象存储"""

    async def upload(self, content: bytes, metadata: PhotoMetadata) -> str:
        """上传内容并返回可访问 URL

        Raises:
            StorageUploadError: 上传失败
        """
        ...


class Notifier(Protocol):
    """邮件通知"""

    async def send_email(self, message: EmailMessage) -> DeliveryReceipt:
        """发送邮件

        Returns:
            DeliveryReceipt，sent=False 表示服务端拒绝

        Raises:
            NotificationError: 传输层失败
        """
        ...
