"""ACL data models for request body and stored document validation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class SaveKind(str, Enum):
    """Which save operation an ACL is being validated for."""

    CREATE = "create"
    UPDATE = "update"


class AccessValueRange(BaseModel):
    """Range of collection or granule access values an ACL applies to."""

    min_value: float | None = None
    max_value: float | None = None
    include_undefined_value: bool | None = None


class TemporalRange(BaseModel):
    """Temporal window an ACL applies to. Naive datetimes are read as UTC."""

    start_date: datetime | None = None
    stop_date: datetime | None = None

    @field_validator("start_date", "stop_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CollectionIdentifier(BaseModel):
    entry_titles: list[str] | None = None
    access_value: AccessValueRange | None = None
    temporal: TemporalRange | None = None


class GranuleIdentifier(BaseModel):
    access_value: AccessValueRange | None = None
    temporal: TemporalRange | None = None


class SystemIdentity(BaseModel):
    target: str = Field(..., min_length=1)


class ProviderIdentity(BaseModel):
    provider_id: str = Field(..., min_length=1, max_length=50)
    target: str = Field(..., min_length=1)


class SingleInstanceIdentity(BaseModel):
    target_id: str = Field(..., description="Concept id of the group this ACL governs")
    target: str = Field(..., min_length=1)


class CatalogItemIdentity(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    provider_id: str = Field(..., min_length=1, max_length=50)
    collection_applicable: bool = False
    collection_identifier: CollectionIdentifier | None = None
    granule_applicable: bool = False
    granule_identifier: GranuleIdentifier | None = None


class GroupPermission(BaseModel):
    """Permissions granted to a group or to a whole user type."""

    group_id: str | None = None
    user_type: Literal["guest", "registered"] | None = None
    permissions: list[str] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_grantee(self) -> "GroupPermission":
        if (self.group_id is None) == (self.user_type is None):
            raise ValueError("exactly one of group_id or user_type must be specified")
        return self

    @property
    def grantee(self) -> str:
        return self.user_type or self.group_id


IDENTITY_FIELDS = (
    "system_identity",
    "provider_identity",
    "single_instance_identity",
    "catalog_item_identity",
)


class Acl(BaseModel):
    """An access control list: one identity plus the permissions it grants."""

    legacy_guid: str | None = Field(default=None, min_length=1, max_length=50)
    group_permissions: list[GroupPermission] = Field(..., min_length=1)
    system_identity: SystemIdentity | None = None
    provider_identity: ProviderIdentity | None = None
    single_instance_identity: SingleInstanceIdentity | None = None
    catalog_item_identity: CatalogItemIdentity | None = None

    @model_validator(mode="after")
    def check_single_identity(self) -> "Acl":
        present = [name for name in IDENTITY_FIELDS if getattr(self, name) is not None]
        if len(present) != 1:
            raise ValueError(
                f"exactly one of {', '.join(IDENTITY_FIELDS)} must be specified, got {len(present)}"
            )
        return self
