"""SendGridNotifier -- SendGrid v3 mail/send 封装"""

import html

import httpx
import structlog
from pydantic import SecretStr

from .exceptions import NotificationError
from .models import DeliveryReceipt, EmailMessage

log = structlog.get_logger()

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"

_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.TimeoutException,
)


def text_to_html(body: str) -> str:
    """纯文本正文转为简单 HTML（保留换行）"""
    return html.escape(body).replace("\n", "<br>")


class SendGridNotifier:
    """Notifier 的 SendGrid 实现

    2xx 视为已投递；4xx/5xx 返回 sent=False 的回执；
    连接类错误抛出 NotificationError。
    """

    provider = "sendgrid"

    def __init__(
        self,
        api_key: SecretStr,
        default_sender: str,
        timeout_s: int = 15,
        http_client: httpx.AsyncClient | None = None,
        send_url: str = SENDGRID_SEND_URL,
    ) -> None:
        self._api_key = api_key
        self._default_sender = default_sender
        self._timeout_s = timeout_s
        self._http_client = http_client
        self._send_url = send_url

    def _build_body(self, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.sender or self._default_sender},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.body},
                {"type": "text/html", "value": message.html or text_to_html(message.body)},
            ],
        }

    async def send_email(self, message: EmailMessage) -> DeliveryReceipt:
        headers = {"Authorization": f"Bearer {self._api_key.get_secret_value()}"}
        body = self._build_body(message)
        try:
            if self._http_client is not None:
                resp = await self._http_client.post(
                    self._send_url, json=body, headers=headers, timeout=self._timeout_s
                )
            else:
                async with httpx.AsyncClient() as http_client:
                    resp = await http_client.post(
                        self._send_url, json=body, headers=headers, timeout=self._timeout_s
                    )
        except _CONNECTION_ERROR_TYPES as e:
            log.error("email_send_unreachable", provider=self.provider, error=str(e))
            raise NotificationError(self.provider, str(e)) from e

        if resp.status_code >= 300:
            log.warning(
                "email_send_rejected",
                provider=self.provider,
                status_code=resp.status_code,
            )
            return DeliveryReceipt(
                sent=False,
                provider=self.provider,
                error=f"HTTP {resp.status_code}: {resp.text[:200]}",
            )

        message_id = resp.headers.get("X-Message-Id")
        log.info("email_sent", provider=self.provider, message_id=message_id)
        return DeliveryReceipt(sent=True, provider=self.provider, message_id=message_id)
