"""Value types exchanged between the pipeline, the job store and callers."""
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from menuscout.common.models import TERMINAL_STATUSES

PRICE_RE = re.compile(r"\d+(?:[.,]\d{1,3})?")


class MenuItem(BaseModel):
    """A single priced menu entry."""

    name: str = Field(min_length=1, description="Item name as displayed")
    description: str = Field(default="", description="Item description, may be empty")
    price: str = Field(description="Normalized numeric price text, e.g. 2.500")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("price")
    @classmethod
    def _price_is_numeric(cls, value: str) -> str:
        if not PRICE_RE.fullmatch(value):
            raise ValueError(f"price {value!r} is not numeric")
        return value


class ScrapeResult(BaseModel):
    """Menu of one restaurant as surfaced to callers."""

    model_config = ConfigDict(populate_by_name=True)

    restaurant: str = Field(description="Restaurant query as submitted")
    source: str = Field(description="Identifier of the target site")
    menu_items: list[MenuItem] = Field(default_factory=list, alias="menuItems")

    def to_payload(self) -> dict:
        """Serialize to the public ``{restaurant, source, menuItems}`` shape."""
        return self.model_dump(by_alias=True)


class JobPayload(BaseModel):
    """Submission payload, validated before any job row is created."""

    model_config = ConfigDict(strict=True)

    restaurant_query: str

    @field_validator("restaurant_query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("restaurant_query must not be empty")
        return value


class JobView(BaseModel):
    """Read-only snapshot of a job."""

    id: str
    payload: JobPayload
    status: str
    result: Optional[ScrapeResult] = None
    error: Optional[str] = None
    attempts: int = 0
    worker_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "payload": {"restaurantQuery": self.payload.restaurant_query},
            "status": self.status,
            "result": self.result.to_payload() if self.result is not None else None,
            "error": self.error,
        }
