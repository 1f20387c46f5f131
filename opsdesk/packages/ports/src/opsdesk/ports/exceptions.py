"""Ports 异常体系"""


class PortError(Exception):
    """外部能力端口基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class StorageUploadError(PortError):
    """照片上传失败（连接失败、超时、服务端拒绝等）"""

    def __init__(self, target: str, original_error: Exception | str) -> None:
        """
        Args:
            target: 上传目标（目录或 URL）
            original_error: 原始异常或描述
        """
        super().__init__(f"Photo upload to {target} failed -- {original_error}")
        self.target = target
        self.original_error = original_error


class NotificationError(PortError):
    """邮件发送失败"""

    def __init__(self, provider: str, message: str, recoverable: bool = True) -> None:
        super().__init__(f"{provider}: {message}", recoverable=recoverable)
        self.provider = provider
