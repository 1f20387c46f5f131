"""Resolution Request 模型 -- 每种任务类型一个请求 schema

这里只负责形状校验（字段类型、必填）。类型专属的业务规则
由各 adapter 的 check_request / check_against_task 执行。
同时接受 snake_case 与 camelCase 字段名，未知字段忽略。
"""

import base64
import binascii
from typing import Any

from pydantic import (
    AliasChoices,
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..validation import normalize_unit_number

_REQUEST_CONFIG = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
    extra="ignore",
    str_strip_whitespace=True,
)


class PhotoInput(BaseModel):
    """照片输入：已托管的 URL，或待上传的 base64 内容（二选一）"""

    model_config = _REQUEST_CONFIG

    url: str | None = None
    content_base64: str | None = None
    filename: str = "photo.jpg"
    mime: str = "image/jpeg"

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_url(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"url": data}
        return data

    @field_validator("content_base64")
    @classmethod
    def _decodable(cls, value: str | None) -> str | None:
        if value:
            try:
                base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError("content_base64 is not valid base64") from e
        return value

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "PhotoInput":
        if bool(self.url) == bool(self.content_base64):
            raise ValueError("photo requires exactly one of url or content_base64")
        return self

    def content_bytes(self) -> bytes:
        """解码待上传内容（仅 content_base64 形式有效）"""
        return base64.b64decode(self.content_base64 or "")


class FeedbackResponseRequest(BaseModel):
    """差评回复"""

    model_config = _REQUEST_CONFIG

    email_subject: str
    email_body: str


class UnitAssignmentRequest(BaseModel):
    """单元分配（AssignStorageUnit / RequestedUnitAssignment 共用）"""

    model_config = _REQUEST_CONFIG

    unit_numbers: list[str]
    # 未勾选即司机不匹配
    driver_matches: bool = False
    trailer_photos: list[PhotoInput] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "trailer_photos", "trailerPhotos", "trailerPhotoUrls", "trailer_photo_urls"
        ),
    )

    @field_validator("unit_numbers")
    @classmethod
    def _normalize_unit_numbers(cls, value: list[str]) -> list[str]:
        return [normalize_unit_number(number) for number in value]


class LocationUpdateRequest(BaseModel):
    """仓库位置录入"""

    model_config = _REQUEST_CONFIG

    warehouse_location: str


class PartnerContactRequest(BaseModel):
    """联系搬家合作方结果"""

    model_config = _REQUEST_CONFIG

    called_partner: bool = Field(
        validation_alias=AliasChoices(
            "called_partner", "calledPartner", "calledMovingPartner"
        )
    )
    got_hold_of_partner: bool | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "got_hold_of_partner", "gotHoldOfPartner", "gotHoldOfMovingPartner"
        ),
    )


class CleaningRequest(BaseModel):
    """清洁完成确认"""

    model_config = _REQUEST_CONFIG

    confirmed_clean: bool
    photos: list[PhotoInput] = Field(default_factory=list)


class StorageReturnRequest(BaseModel):
    """入库核查"""

    model_config = _REQUEST_CONFIG

    has_damage: bool
    damage_description: str | None = None
    damage_photos: list[PhotoInput] = Field(default_factory=list)
    is_unit_empty: bool | None = None
    is_still_storing_items: bool | None = None
    is_all_items_removed: bool | None = None


class PrepUnitsRequest(BaseModel):
    """单元出库备货确认"""

    model_config = _REQUEST_CONFIG

    checked_unit_numbers: list[str]
    units_in_staging_area: bool = Field(
        validation_alias=AliasChoices(
            "units_in_staging_area", "unitsInStagingArea", "allUnitsInStagingArea"
        )
    )


class PrepOrderRequest(BaseModel):
    """耗材订单备货确认"""

    model_config = _REQUEST_CONFIG

    checked_item_ids: list[int]
    is_prepped: bool

    @field_validator("checked_item_ids")
    @classmethod
    def _positive_ids(cls, value: list[int]) -> list[int]:
        if any(item_id <= 0 for item_id in value):
            raise ValueError("item ids must be positive")
        return value
