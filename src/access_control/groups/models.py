"""Group data models for request body validation."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter

MemberId = Annotated[str, StringConstraints(min_length=1, max_length=50)]

# Body of add/remove member requests.
MembersAdapter = TypeAdapter(list[MemberId])


class Group(BaseModel):
    """A named collection of user ids, optionally owned by a provider."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    provider_id: str | None = Field(default=None, min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=255)
    legacy_guid: str | None = Field(default=None, min_length=1, max_length=50)
    members: list[MemberId] = Field(default_factory=list)
