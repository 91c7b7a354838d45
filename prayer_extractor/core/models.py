"""
Pydantic views of prayer records and API request/response bodies.
The working set itself stays a list of plain dicts; these only shape HTTP I/O.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PrayerRecordModel(BaseModel):
    """One day's schedule as returned by the API (strings, passed through verbatim)."""

    model_config = ConfigDict(extra="allow")

    date: str
    fajr: str
    dhuhr: str
    asr: str
    maghrib: str
    isha: str


class JsonTextRequest(BaseModel):
    text: str


class RecordValidationResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None
    index: Optional[int] = None
    record_count: int = 0


class RecordEditRequest(BaseModel):
    field: str
    value: str


class ApiKeyRequest(BaseModel):
    provider: str
    api_key: str = ""


class ApiKeyResponse(BaseModel):
    is_valid: bool
    message: Optional[str] = None


class ProviderInfo(BaseModel):
    tag: str
    name: str
    description: str
    key_format: str
    instructions: str


class StateResponse(BaseModel):
    state: str
    input_method: Optional[str] = None
    provider: str
    api_key_valid: bool
    record_count: int
    error_message: Optional[str] = None


class ExportResponse(BaseModel):
    path: str
    record_count: int


class RecordsResponse(BaseModel):
    records: List[PrayerRecordModel]


class ExtractRequest(BaseModel):
    provider: str
    api_key: str
    image_base64: str
    mime_type: str = "image/jpeg"
    name: str = "upload"


class SendResponse(BaseModel):
    status: str
    error: Optional[str] = None
