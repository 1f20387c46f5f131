"""Opsdesk Ports -- 照片存储与邮件通知能力端口

packages/ports 的公开接口导出。
"""

# 配置
from .config import PortsConfig, load_ports_config

# 实现
from .echo_notifier import EchoNotifier

# 异常
from .exceptions import NotificationError, PortError, StorageUploadError
from .factory import build_notifier, build_object_storage
from .http_storage import HttpPhotoStorage
from .local_storage import LocalPhotoStorage

# 数据模型
from .models import DeliveryReceipt, EmailMessage, PhotoMetadata
from .protocols import Notifier, ObjectStorage
from .sendgrid import SendGridNotifier

__all__ = [
    "PhotoMetadata",
    "EmailMessage",
    "DeliveryReceipt",
    "ObjectStorage",
    "Notifier",
    "LocalPhotoStorage",
    "HttpPhotoStorage",
    "SendGridNotifier",
    "EchoNotifier",
    "build_object_storage",
    "build_notifier",
    "PortsConfig",
    "load_ports_config",
    "PortError",
    "StorageUploadError",
    "NotificationError",
]
