"""Ports 数据模型 -- 照片元数据、邮件消息、投递回执"""

from pydantic import BaseModel, Field


class PhotoMetadata(BaseModel):
    """上传照片的元数据"""

    category: str = Field(description="照片类别，如 trailer / cleaning / damage")
    entity_id: str = Field(default="", description="关联的业务主键")
    filename: str = Field(default="photo.jpg", description="原始文件名")
    mime: str = Field(default="image/jpeg", description="MIME 类型")


class EmailMessage(BaseModel):
    """待发送邮件"""

    to: str
    subject: str
    body: str = Field(description="纯文本正文")
    html: str | None = Field(default=None, description="HTML 正文，缺省时由纯文本生成")
    sender: str | None = Field(default=None, description="发件人，缺省使用配置值")


class DeliveryReceipt(BaseModel):
    """邮件投递回执"""

    sent: bool
    provider: str
    message_id: str | None = None
    error: str = ""
