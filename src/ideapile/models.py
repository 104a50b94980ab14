"""
Data models for IdeaPile.

Sets (tags, connections, related ideas) are plain lists at this boundary;
how they are stored is a concern of the db module alone.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EnrichmentKind(str, Enum):
    """Persisted enrichment kinds. FROZEN: tagging and linking are not kinds."""

    EXPAND = "expand"
    COMBINE = "combine"
    SUGGEST = "suggest"
    INSPIRE = "inspire"


class Enrichment(BaseModel):
    """An AI-produced artifact attached to exactly one idea."""

    id: str
    idea_id: str
    kind: EnrichmentKind
    content: str
    timestamp: datetime
    related_ideas: list[str] = Field(default_factory=list)


class Idea(BaseModel):
    """The atomic captured note."""

    id: str
    content: str = Field(min_length=1)
    timestamp: datetime
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    connections: list[str] = Field(default_factory=list)
    ai_expansions: list[Enrichment] = Field(default_factory=list)


class EnrichmentResult(BaseModel):
    """Output of a primary enrichment call, before it is persisted."""

    kind: EnrichmentKind
    content: str
    related_ideas: list[str] = Field(default_factory=list)


class Bucket(BaseModel):
    """A display-only temporal grouping of ideas."""

    key: str
    title: str
    subtitle: str = ""
    color: str = "primary"
    members: list[Idea] = Field(default_factory=list)
