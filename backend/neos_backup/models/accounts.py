"""Account-side documents whose wire shape needs special handling.

Most keys are camelCase, but several are spelled irregularly on the wire
(``publicRSAKey``, ``CurrentSession``, ``sessionURLs``, ``userID``,
``HasEnded``, ``IsValid``, and the PascalCase RSA key members including
``DP``/``DQ``). Those carry explicit aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_pascal

from neos_backup.core.config import Settings, get_settings
from neos_backup.core.errors import BsonSchemaError
from neos_backup.models.records import CamelModel
from neos_backup.utils.normalize import ErrToNone, NullToDefault


class RsaKey(CamelModel):
    model_config = ConfigDict(alias_generator=to_pascal)

    exponent: str
    modulus: str
    p: str | None = None
    q: str | None = None
    dp: str | None = Field(default=None, alias="DP")
    dq: str | None = Field(default=None, alias="DQ")
    inverse_q: str | None = None
    d: str | None = None


class SessionUser(CamelModel):
    username: str = ""
    user_id: str = Field(default="", alias="userID")
    is_present: bool = False
    output_device: int = 0


class CorrespondingWorldId(CamelModel):
    record_id: str
    owner_id: str


class Session(CamelModel):
    name: str = ""
    description: str | None = None
    corresponding_world_id: CorrespondingWorldId | None = None
    tags: list[str] = Field(default_factory=list)
    session_id: str
    normalized_session_id: str = ""
    host_user_id: str = ""
    host_machine_id: str = ""
    host_username: str = ""
    compatibility_hash: str = ""
    universe_id: str | None = None
    neos_version: str = ""
    headless_host: bool = False
    session_urls: list[str] = Field(default_factory=list, alias="sessionURLs")
    parent_session_ids: Annotated[list[str], NullToDefault] = Field(default_factory=list)
    nested_session_ids: Annotated[list[str], NullToDefault] = Field(default_factory=list)
    session_users: list[SessionUser] = Field(default_factory=list)
    thumbnail: str = ""
    joined_users: int = 0
    active_users: int = 0
    total_joined_users: int = 0
    total_active_users: int = 0
    max_users: int = 0
    mobile_friendly: bool = False
    session_begin_time: datetime | None = None
    last_update: datetime | None = None
    away_since: datetime | None = None
    access_level: str = ""
    has_ended: bool = Field(default=False, alias="HasEnded")
    is_valid: bool = Field(default=False, alias="IsValid")


class ContactStatus(CamelModel):
    online_status: str = ""
    last_status_change: Annotated[datetime | None, ErrToNone] = None
    current_session_id: str | None = None
    current_session_access_level: int = 0
    current_session_hidden: bool = False
    current_hosting: bool = False
    compatibility_hash: str | None = None
    neos_version: str | None = None
    public_rsa_key: RsaKey | None = Field(default=None, alias="publicRSAKey")
    output_device: str = ""
    is_mobile: bool = False
    current_session: Session | None = Field(default=None, alias="CurrentSession")
    active_sessions: list[Session] | None = None


class Profile(CamelModel):
    icon_url: str = ""
    background_url: str | None = None
    tagline: str | None = None
    description: str | None = None
    profile_world_url: str | None = None
    showcase_items: Annotated[list[str], NullToDefault] = Field(default_factory=list)
    token_opt_out: Annotated[list[str], NullToDefault] = Field(default_factory=list)


class Contact(CamelModel):
    id: str
    owner_id: str
    friend_username: str = ""
    # a single string on the wire; never split
    alternate_usernames: str | None = None
    friend_status: str = ""
    is_accepted: bool = False
    user_status: ContactStatus = Field(default_factory=ContactStatus)
    latest_message_time: Annotated[datetime | None, ErrToNone] = None
    profile: Profile | None = None


class GroupMember(CamelModel):
    """Quota counters arrive signed.

    Validating with ``context={"strict": True}`` rejects negative values with
    :class:`BsonSchemaError`; otherwise they are kept as-is.
    """

    id: str
    owner_id: str
    quota_bytes: int = 0
    used_bytes: int = 0

    @field_validator("quota_bytes", "used_bytes")
    @classmethod
    def _non_negative_in_strict_mode(cls, value: int, info: ValidationInfo) -> int:
        context: Any = info.context or {}
        if value < 0 and context.get("strict"):
            raise BsonSchemaError(f"{info.field_name} must not be negative", path=info.field_name or "")
        return value

    @classmethod
    def from_wire(cls, data: Any, settings: Settings | None = None) -> "GroupMember":
        strict = (settings or get_settings()).strict
        return cls.model_validate(data, context={"strict": strict})


__all__ = [
    "Contact",
    "ContactStatus",
    "CorrespondingWorldId",
    "GroupMember",
    "Profile",
    "RsaKey",
    "Session",
    "SessionUser",
]
