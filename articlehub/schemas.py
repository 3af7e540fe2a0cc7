import re
import uuid
from datetime import datetime, timezone
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from articlehub.models import AccessLevel

_NAME_RE = re.compile(r"^(?:[^\W\d_]|[ '\-])+$")

Tag = Annotated[str, StringConstraints(min_length=1, max_length=50)]
Header = Annotated[str, StringConstraints(min_length=1, max_length=128)]
Content = Annotated[str, StringConstraints(max_length=10000)]
Password = Annotated[str, StringConstraints(min_length=5, max_length=128)]
TagList = Annotated[list[Tag], Field(max_length=50)]


def _validate_name(value: str) -> str:
    if not _NAME_RE.match(value):
        raise ValueError("name may contain only letters, spaces, hyphens and apostrophes")
    return value


Name = Annotated[str, StringConstraints(min_length=1, max_length=128), AfterValidator(_validate_name)]


# --- User ---

class UserCreate(BaseModel):
    name: Name
    email: EmailStr
    password: Password

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(BaseModel):
    """Partial update; fields left out of the payload are not touched."""

    name: Name | None = None
    password: Password | None = None
    active: bool | None = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for field in self.model_fields_set:
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class UserResponse(BaseModel):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    active: bool
    name: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class UserSearch(BaseModel):
    limit: int = Field(20, ge=0, le=50)
    offset: int = Field(0, ge=0)
    name: str | None = None
    active: bool | None = None


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1, max_length=128)


class LoginResult(BaseModel):
    session_token: str


# --- Article ---

class ArticleCreate(BaseModel):
    header: Header
    content: Content | None = None
    tags: TagList = []
    access: AccessLevel


class ArticleUpdate(BaseModel):
    """
    Partial update with tri-state fields.

    A field missing from ``model_fields_set`` is left unchanged.  An
    explicit null clears ``content`` and ``tags``; ``header``, ``access``
    and ``active`` are not nullable, so an explicit null is rejected.
    """

    active: bool | None = None
    header: Header | None = None
    content: Content | None = None
    tags: TagList | None = None
    access: AccessLevel | None = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for field in ("active", "header", "access"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class ArticleResponse(BaseModel):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    active: bool
    header: str
    content: str | None
    tags: list[str] = []
    access: AccessLevel
    author_id: uuid.UUID
    author_name: str | None = None
    model_config = ConfigDict(from_attributes=True)


class ArticleDeleted(BaseModel):
    id: uuid.UUID


class ArticleSearch(BaseModel):
    """
    Search filters.  ``requester_id`` is never taken from the query string;
    it is the caller resolved from the bearer token, if any.
    """

    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)
    active: bool | None = None
    access: AccessLevel | None = None
    tags: TagList | None = None
    header: Header | None = None
    created_at_from: datetime | None = None
    created_at_to: datetime | None = None
    requester_id: uuid.UUID | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        # Query strings carry tags as "a,b,c".
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            parts = [
                part.strip()
                for item in value
                for part in (item.split(",") if isinstance(item, str) else [item])
            ]
            return [part for part in parts if part] or None
        return value

    @field_validator("created_at_from", "created_at_to")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_range(self):
        if (
            self.created_at_from is not None
            and self.created_at_to is not None
            and self.created_at_from > self.created_at_to
        ):
            raise ValueError(
                'Date range is invalid: "from" date must be before or equal to "to" date'
            )
        return self
