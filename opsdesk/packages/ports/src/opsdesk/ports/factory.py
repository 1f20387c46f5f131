"""根据 PortsConfig 构造端口实现"""

from pathlib import Path

import structlog

from .config import PortsConfig
from .echo_notifier import EchoNotifier
from .http_storage import HttpPhotoStorage
from .local_storage import LocalPhotoStorage
from .protocols import Notifier, ObjectStorage
from .sendgrid import SendGridNotifier

log = structlog.get_logger()


def build_object_storage(config: PortsConfig, photos_dir: Path) -> ObjectStorage:
    """http 模式缺少上传地址时降级为本地存储"""
    if config.storage_mode == "http":
        if config.upload_url:
            log.info("object_storage_initialized", mode="http", url=config.upload_url)
            return HttpPhotoStorage(
                upload_url=config.upload_url,
                upload_preset=config.upload_preset,
                timeout_s=config.timeout_s,
            )
        log.warning(
            "object_storage_degraded",
            message="OPSDESK_UPLOAD_URL 未配置，降级为本地照片存储",
        )

    photos_dir.mkdir(parents=True, exist_ok=True)
    log.info("object_storage_initialized", mode="local", photos_dir=str(photos_dir))
    return LocalPhotoStorage(photos_dir, base_url=config.photo_base_url)


def build_notifier(config: PortsConfig) -> Notifier:
    """sendgrid 模式缺少 API key 时降级为 echo"""
    if config.notify_mode == "sendgrid":
        if config.sendgrid_api_key.get_secret_value():
            log.info("notifier_initialized", mode="sendgrid", sender=config.notify_from)
            return SendGridNotifier(
                api_key=config.sendgrid_api_key,
                default_sender=config.notify_from,
                timeout_s=config.timeout_s,
            )
        log.warning(
            "notifier_degraded",
            message="SENDGRID_API_KEY 未配置，降级为 echo 邮件模式",
        )

    log.info("notifier_initialized", mode="echo")
    return EchoNotifier()
