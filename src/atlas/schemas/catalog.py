# src/atlas/schemas/catalog.py
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.atlas.models.zones import ZoneStatus
from src.atlas.schemas.zone import Boundary, ZoneRead

SortKey = Literal["name", "created_at", "updated_at", "area", "status"]
SortOrder = Literal["asc", "desc"]


class CatalogQuery(BaseModel):
    """
    Conjunctive filters over the zones a user may view.

    Every filter is optional; statuses=None means any status, deleted included.
    """

    statuses: Optional[list[ZoneStatus]] = None
    owner_id: Optional[str] = None
    tags: Optional[list[str]] = None
    text: Optional[str] = Field(default=None, max_length=200)
    bbox: Optional[tuple[float, float, float, float]] = None
    intersects: Optional[Boundary] = None

    sort: SortKey = "name"
    order: SortOrder = "asc"
    limit: Optional[int] = Field(default=None, ge=1)
    cursor: Optional[str] = None

    @field_validator("text", "owner_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        cleaned = sorted({str(t).strip() for t in v if str(t).strip()})
        return cleaned or None

    def filter_key(self) -> dict[str, Any]:
        """Canonical description of everything that shapes the result set."""
        return {
            "statuses": sorted(s.value for s in self.statuses) if self.statuses else None,
            "owner_id": self.owner_id,
            "tags": self.tags,
            "text": self.text.lower() if self.text else None,
            "bbox": list(self.bbox) if self.bbox else None,
            "intersects": self.intersects,
            "sort": self.sort,
            "order": self.order,
        }


class CatalogPage(BaseModel):
    items: list[ZoneRead]
    next_cursor: Optional[str] = None
