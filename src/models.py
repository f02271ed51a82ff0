"""
Pydantic models for the friend links dataset (links.json)
"""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_serializer,
    model_validator,
)


class LinkStatus(str, Enum):
    """Activity status recorded on a link after a check"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNREACHABLE = "unreachable"


# =============================================================================
# Dataset Models
# =============================================================================

class KeyOrderedModel(BaseModel):
    """
    Dumps keys in the order they were loaded in.

    Keys that were not in the source record (e.g. a first ``lastChecked``)
    follow in field order, so re-saving an untouched record reproduces it.
    """
    _key_order: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def remember_key_order(cls, data: Any, handler):
        instance = handler(data)
        if isinstance(data, dict):
            instance._key_order = list(data)
        return instance

    @model_serializer(mode="wrap")
    def dump_in_key_order(self, handler) -> dict[str, Any]:
        data = handler(self)
        ordered = {key: data[key] for key in self._key_order if key in data}
        ordered.update((key, value) for key, value in data.items() if key not in ordered)
        return ordered


class LinkEntry(KeyOrderedModel):
    """One friend link. Keys not modeled here (e.g. avatar_cache) are kept as-is."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    intro: str = ""
    link: str
    avatar: str = ""
    last_checked: date | None = Field(None, alias="lastChecked")
    last_active: date | None = Field(None, alias="lastActive")
    status: LinkStatus | None = None

    @field_validator('link')
    @classmethod
    def validate_link(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("link must not be empty")
        return v


class LinkGroup(KeyOrderedModel):
    """Named, ordered collection of links"""
    model_config = ConfigDict(extra="allow")

    id_name: str
    desc: str = ""
    link_list: list[LinkEntry] = []

    def index_of(self, link: str) -> int:
        """Position of the entry with this URL, or -1"""
        for i, entry in enumerate(self.link_list):
            if entry.link == link:
                return i
        return -1

    def pop_entry(self, link: str) -> LinkEntry | None:
        idx = self.index_of(link)
        if idx < 0:
            return None
        return self.link_list.pop(idx)

    def append(self, entry: LinkEntry) -> None:
        self.link_list.append(entry)


class LinksDocument(KeyOrderedModel):
    """Top-level links.json document"""
    model_config = ConfigDict(extra="allow")

    friends: list[LinkGroup] = []

    def group(self, id_name: str) -> LinkGroup | None:
        for group in self.friends:
            if group.id_name == id_name:
                return group
        return None
