"""PortsConfig -- 外部能力端口配置加载

从环境变量加载配置，不在代码中硬编码密钥。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class PortsConfig(BaseModel):
    """Ports 包配置 -- 从环境变量加载

    环境变量:
        OPSDESK_STORAGE_MODE: 照片存储模式（local/http）
        OPSDESK_PHOTO_BASE_URL: 本地模式返回 URL 的前缀
        OPSDESK_UPLOAD_URL: http 模式的上传地址
        OPSDESK_UPLOAD_PRESET: http 模式的上传预设
        OPSDESK_NOTIFY_MODE: 邮件模式（sendgrid/echo）
        SENDGRID_API_KEY: SendGrid API key
        OPSDESK_NOTIFY_FROM: 发件人地址
        OPSDESK_PORT_TIMEOUT_S: 外部调用超时（秒，默认 15）
    """

    storage_mode: Literal["local", "http"] = Field(
        default="local",
        description="照片存储模式：local / http",
    )
    photo_base_url: str = Field(
        default="/photos",
        description="本地存储返回 URL 的前缀",
    )
    upload_url: str = Field(
        default="",
        description="HTTP 上传端点",
    )
    upload_preset: str = Field(
        default="",
        description="HTTP 上传预设（unsigned upload preset）",
    )
    notify_mode: Literal["sendgrid", "echo"] = Field(
        default="echo",
        description="邮件模式：sendgrid / echo",
    )
    sendgrid_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="SendGrid API key",
    )
    notify_from: str = Field(
        default="admin@opsdesk.local",
        description="发件人地址",
    )
    timeout_s: int = Field(
        default=15,
        ge=1,
        description="外部调用超时（秒）",
    )


def load_ports_config() -> PortsConfig:
    """从环境变量加载 Ports 配置

    Returns:
        PortsConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("OPSDESK_STORAGE_MODE"):
        kwargs["storage_mode"] = val

    if val := os.environ.get("OPSDESK_PHOTO_BASE_URL"):
        kwargs["photo_base_url"] = val

    if val := os.environ.get("OPSDESK_UPLOAD_URL"):
        kwargs["upload_url"] = val

    if val := os.environ.get("OPSDESK_UPLOAD_PRESET"):
        kwargs["upload_preset"] = val

    if val := os.environ.get("OPSDESK_NOTIFY_MODE"):
        kwargs["notify_mode"] = val

    if val := os.environ.get("SENDGRID_API_KEY"):
        kwargs["sendgrid_api_key"] = SecretStr(val)

    if val := os.environ.get("OPSDESK_NOTIFY_FROM"):
        kwargs["notify_from"] = val

    if val := os.environ.get("OPSDESK_PORT_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="OPSDESK_PORT_TIMEOUT_S",
                value=val,
                fallback=15,
            )

    return PortsConfig(**kwargs)
