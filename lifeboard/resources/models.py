"""
Resource models.

Every resource kind shares one mechanism (owner-scoped CRUD); kinds differ
only in their fields. Each kind has a create model (all required fields plus
``ownerId``) and an update model (every field optional). Wire names are
camelCase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class OwnedPayload(WireModel):
    owner_id: str = Field(min_length=1)


# -- todos ---------------------------------------------------------------

class TodoCreate(OwnedPayload):
    task: str = Field(min_length=1)
    completed: bool = False


class TodoUpdate(OwnedPayload):
    task: Optional[str] = Field(default=None, min_length=1)
    completed: Optional[bool] = None


# -- plans ---------------------------------------------------------------

PlanStatus = Literal["Not Started", "In Progress", "Completed", "On Hold"]
Priority = Literal["Low", "Medium", "High"]


class PlanCreate(OwnedPayload):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: PlanStatus
    due_date: Optional[str] = None
    priority: Priority = "Medium"


class PlanUpdate(OwnedPayload):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    status: Optional[PlanStatus] = None
    due_date: Optional[str] = None
    priority: Optional[Priority] = None


# -- stories -------------------------------------------------------------

StoryStatus = Literal["Draft", "In Progress", "Completed"]


class StoryCreate(OwnedPayload):
    title: str = Field(min_length=1)
    content: str = ""
    genre: Optional[str] = None
    status: StoryStatus = "Draft"


class StoryUpdate(OwnedPayload):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = None
    genre: Optional[str] = None
    status: Optional[StoryStatus] = None


# -- links ---------------------------------------------------------------

class LinkCreate(OwnedPayload):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None


class LinkUpdate(OwnedPayload):
    name: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None


# -- passwords -----------------------------------------------------------

class PasswordCreate(OwnedPayload):
    website_name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password_value: str = Field(min_length=1)
    url: Optional[str] = None
    notes: Optional[str] = None


class PasswordUpdate(OwnedPayload):
    website_name: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=1)
    password_value: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = None
    notes: Optional[str] = None


# -- cards ---------------------------------------------------------------

CardType = Literal["credit", "debit", "other"]


class CardCreate(OwnedPayload):
    card_name: str = Field(min_length=1)
    card_type: CardType = "other"
    bank_name: Optional[str] = None
    last_four_digits: Optional[str] = Field(default=None, pattern=r"^\d{4}$")
    expiry_date: Optional[str] = Field(default=None, pattern=r"^(0[1-9]|1[0-2])/\d{2}$")
    card_holder_name: Optional[str] = None
    notes: Optional[str] = None
    associated_website_login_ids: List[str] = Field(default_factory=list)


class CardUpdate(OwnedPayload):
    card_name: Optional[str] = Field(default=None, min_length=1)
    card_type: Optional[CardType] = None
    bank_name: Optional[str] = None
    last_four_digits: Optional[str] = Field(default=None, pattern=r"^\d{4}$")
    expiry_date: Optional[str] = Field(default=None, pattern=r"^(0[1-9]|1[0-2])/\d{2}$")
    card_holder_name: Optional[str] = None
    notes: Optional[str] = None
    associated_website_login_ids: Optional[List[str]] = None


# -- gallery -------------------------------------------------------------

class AlbumCreate(OwnedPayload):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None


class AlbumUpdate(OwnedPayload):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None


class PhotoCreate(OwnedPayload):
    url: str = Field(min_length=1)
    album_id: str = Field(min_length=1)
    caption: Optional[str] = None


class PhotoUpdate(OwnedPayload):
    url: Optional[str] = Field(default=None, min_length=1)
    album_id: Optional[str] = Field(default=None, min_length=1)
    caption: Optional[str] = None


@dataclass(frozen=True)
class ResourceKind:
    """Everything the generic routes and clients need to know about a kind."""

    name: str
    label: str
    create_model: Type[OwnedPayload]
    update_model: Type[OwnedPayload]
    # Records of this kind point at a record of kind `parent` through `parent_field`
    parent: Optional[str] = None
    parent_field: Optional[str] = None

    @property
    def path(self) -> str:
        return f"/{self.name}"


RESOURCE_KINDS: Dict[str, ResourceKind] = {
    kind.name: kind
    for kind in (
        ResourceKind("todos", "Todo", TodoCreate, TodoUpdate),
        ResourceKind("plans", "Plan", PlanCreate, PlanUpdate),
        ResourceKind("stories", "Story", StoryCreate, StoryUpdate),
        ResourceKind("links", "Link", LinkCreate, LinkUpdate),
        ResourceKind("passwords", "Password entry", PasswordCreate, PasswordUpdate),
        ResourceKind("cards", "Card", CardCreate, CardUpdate),
        ResourceKind("albums", "Album", AlbumCreate, AlbumUpdate),
        ResourceKind("photos", "Photo", PhotoCreate, PhotoUpdate, parent="albums", parent_field="albumId"),
    )
}
