"""
Pydantic shapes shared by the stores and the routers.

JSON uses camelCase (``mimeType``, ``parentId`` ...), Python code uses
snake_case; both spellings are accepted on input.
"""
import base64
import binascii
import re
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

FOLDER_MIME_TYPE = "folder"
DEFAULT_MIME_TYPE = "application/octet-stream"

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^,]*)?;base64,", re.IGNORECASE)
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def split_data_url(content: str) -> Tuple[Optional[str], str]:
    """Strips a ``data:<mime>;base64,`` prefix, returning (mime, payload)."""
    match = _DATA_URL.match(content)
    if not match:
        return None, content
    return match.group("mime") or None, content[match.end():]


def decode_content(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"content is not valid base64: {e}")


def encode_content(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Node(CamelModel):
    """A stored file or folder."""
    id: int
    name: str
    path: str = ""
    size: int = 0
    mime_type: str
    content: str = ""
    parent_id: Optional[int] = None
    is_folder: bool = False
    created_at: datetime
    owner_id: Optional[int] = None

    def without_content(self) -> "Node":
        return self.model_copy(update={"content": ""})

    def decoded_content(self) -> bytes:
        return base64.b64decode(self.content)


class NodeCreate(CamelModel):
    """
    Input for a new node.

    For files ``size`` is derived from the decoded content; a declared size
    that disagrees is rejected. Folders are normalized to zero size, empty
    content and the ``folder`` mime type.
    """
    name: str = Field(..., min_length=1, max_length=255)
    path: str = ""
    size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    content: str = ""
    parent_id: Optional[int] = None
    is_folder: bool = False

    @model_validator(mode="after")
    def normalize(self):
        if self.is_folder:
            self.size = 0
            self.content = ""
            self.mime_type = FOLDER_MIME_TYPE
            return self

        mime, payload = split_data_url(self.content)
        raw = decode_content(payload)
        if self.size is not None and self.size != len(raw):
            raise ValueError(
                f"size {self.size} does not match decoded content length {len(raw)}"
            )
        self.content = payload
        self.size = len(raw)
        self.mime_type = self.mime_type or mime or DEFAULT_MIME_TYPE
        return self


class NodeUpdate(CamelModel):
    """Partial update. Only ``parentId`` may be explicitly null (move to root)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    path: Optional[str] = None
    mime_type: Optional[str] = None
    content: Optional[str] = None
    parent_id: Optional[int] = None
    size: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def normalize(self):
        for field in ("name", "path", "mime_type", "content"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")

        if self.content is None:
            if self.size is not None:
                raise ValueError("size can only change together with content")
            return self

        mime, payload = split_data_url(self.content)
        raw = decode_content(payload)
        if self.size is not None and self.size != len(raw):
            raise ValueError(
                f"size {self.size} does not match decoded content length {len(raw)}"
            )
        self.content = payload
        self.size = len(raw)
        if self.mime_type is None and mime:
            self.mime_type = mime
        return self

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if self.content is not None:
            data["content"] = self.content
            data["size"] = self.size
            if self.mime_type is not None:
                data["mime_type"] = self.mime_type
        return data


class SearchFilter(BaseModel):
    """
    Conjunction of optional predicates over non-folder nodes.

    Blank strings count as absent. A date-only ``end_date`` covers the whole
    day; naive datetimes are taken as UTC.
    """
    name: Optional[str] = None
    type: Optional[str] = None
    min_size: Optional[int] = Field(None, ge=0)
    max_size: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("name", "type", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def expand_dates(cls, value, info):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if _DATE_ONLY.match(value):
                value = date.fromisoformat(value)
        if isinstance(value, date) and not isinstance(value, datetime):
            bound = time.max if info.field_name == "end_date" else time.min
            return datetime.combine(value, bound, tzinfo=timezone.utc)
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, value):
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_size is not None and self.max_size is not None and self.min_size > self.max_size:
            raise ValueError("minSize must not exceed maxSize")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self

    def matches(self, node: Node) -> bool:
        if node.is_folder:
            return False
        if self.name is not None and self.name.lower() not in node.name.lower():
            return False
        if self.type is not None and not node.mime_type.startswith(self.type):
            return False
        if self.min_size is not None and node.size < self.min_size:
            return False
        if self.max_size is not None and node.size > self.max_size:
            return False
        created_at = as_utc(node.created_at)
        if self.start_date is not None and created_at < self.start_date:
            return False
        if self.end_date is not None and created_at > self.end_date:
            return False
        return True


class StorageSummary(BaseModel):
    used: int
    total: int
    available: int


class UserInDB(CamelModel):
    id: int
    username: str
    hashed_password: str
    created_at: datetime


class UserPublic(CamelModel):
    id: int
    username: str
    created_at: datetime


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
