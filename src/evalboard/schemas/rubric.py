"""Rubric schema: categories of scored items."""

from __future__ import annotations

from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class RubricItem(BaseModel):
    """Single scored field."""

    key: str = Field(..., min_length=1)
    label: str = ""
    max_score: StrictInt

    model_config = ConfigDict(extra="forbid")


class RubricCategory(BaseModel):
    """Labelled group of rubric items."""

    label: str
    items: list[RubricItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class Rubric(BaseModel):
    """Ordered scoring schema.

    Structural checks (positive maxima, unique keys) are performed by
    ``RubricModel.replace`` so that an invalid rubric can still be described
    and reported on instead of failing at construction time.
    """

    categories: list[RubricCategory] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def iter_items(self) -> Iterator[RubricItem]:
        for category in self.categories:
            yield from category.items

    def keys(self) -> list[str]:
        return [item.key for item in self.iter_items()]

    def get_item(self, key: str) -> RubricItem | None:
        for item in self.iter_items():
            if item.key == key:
                return item
        return None
