from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

UINT32_MAX = 2**32 - 1


def to_kebab(name: str) -> str:
    return name.replace("_", "-")


def format_timestamp(value: dt.datetime) -> str:
    """RFC 3339 in UTC with millisecond precision, e.g. 2026-10-19T08:15:02.123Z."""
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class CspReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_kebab, populate_by_name=True)

    document_uri: str = ""
    referrer: str = ""
    violated_directive: str = ""
    effective_directive: str = ""
    original_policy: str = ""
    disposition: str = ""
    blocked_uri: str | None = None
    line_number: int | None = Field(default=None, ge=0, le=UINT32_MAX)
    column_number: int | None = Field(default=None, ge=0, le=UINT32_MAX)
    source_file: str | None = None
    status_code: int | None = Field(default=None, ge=0, le=UINT32_MAX)
    script_sample: str = ""

    @field_validator(
        "document_uri",
        "referrer",
        "violated_directive",
        "effective_directive",
        "original_policy",
        "disposition",
        "script_sample",
        mode="before",
    )
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v


class ReportPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_kebab, populate_by_name=True)

    csp_report: CspReport = Field(default_factory=CspReport)


class ReportRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_uri: str
    created_at: dt.datetime
    referrer: str
    violated_directive: str
    effective_directive: str
    original_policy: str
    disposition: str
    blocked_uri: str | None = None
    line_number: int | None = None
    column_number: int | None = None
    source_file: str | None = None
    status_code: int | None = None
    script_sample: str
    source_ip: str = ""

    @classmethod
    def from_report(cls, report: CspReport, created_at: dt.datetime, source_ip: str = "") -> "ReportRecord":
        return cls(created_at=created_at, source_ip=source_ip, **report.model_dump())

    @field_serializer("created_at", when_used="json")
    def serialize_created_at(self, value: dt.datetime) -> str:
        return format_timestamp(value)


class DistinctReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    violated_directive: str
    effective_directive: str
    original_policy: str
    disposition: str
    blocked_uri: str | None = None
    source_file: str | None = None
    script_sample: str
    first_seen: dt.datetime
    count: int

    @field_serializer("first_seen", when_used="json")
    def serialize_first_seen(self, value: dt.datetime) -> str:
        return format_timestamp(value)


class ViolationCount(BaseModel):
    model_config = ConfigDict(alias_generator=to_kebab, populate_by_name=True)

    day: dt.date
    base_uri: int = 0
    script_src: int = 0
    img_src: int = 0
    style_src: int = 0
    connect_src: int = 0
    media_src: int = 0
    object_src: int = 0
    frame_src: int = 0
    font_src: int = 0


class TokenInfo(BaseModel):
    id: int
    prefix: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
