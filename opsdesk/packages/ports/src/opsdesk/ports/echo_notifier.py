"""EchoNotifier -- 仅记录日志的邮件通知实现

开发/演示环境使用：不真正投递，记录收件人与主题后返回 sent=True。
"""

import structlog
from ulid import ULID

from .models import DeliveryReceipt, EmailMessage

log = structlog.get_logger()


class EchoNotifier:
    """Notifier 的日志实现"""

    provider = "echo"

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    async def send_email(self, message: EmailMessage) -> DeliveryReceipt:
        message_id = str(ULID())
        self.sent.append(message)
        await log.ainfo(
            "email_echoed",
            to=message.to,
            subject=message.subject,
            message_id=message_id,
        )
        return DeliveryReceipt(sent=True, provider=self.provider, message_id=message_id)
