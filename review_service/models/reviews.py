from datetime import date
from enum import Enum
from math import ceil
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict
from sqlmodel import SQLModel, Field

OPTIONAL_FIELDS = ("review_date", "rating", "review")


class Review(SQLModel, table=True):
    film_id: int = Field(foreign_key="film.id", primary_key=True)
    reviewer_id: int = Field(foreign_key="user.id", primary_key=True, index=True)
    completed: bool = Field(default=False)
    review_date: Optional[date] = None
    rating: Optional[int] = Field(default=None, ge=1, le=10)
    review: Optional[str] = Field(default=None, max_length=1000)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Review":
        """Build a review from a raw store row.

        ``completed`` may be stored as 0/1, it is always returned as a bool.
        Optional columns missing from the row are left unset.
        """
        optional = {key: row[key] for key in OPTIONAL_FIELDS if key in row}
        return cls(
            film_id=row["film_id"],
            reviewer_id=row["reviewer_id"],
            completed=bool(row["completed"]),
            **optional
        )

    @classmethod
    def issued(cls, reviewer_id: int, film_id: int, completed: bool = False) -> "Review":
        return cls(film_id=film_id, reviewer_id=reviewer_id, completed=completed)


class ReviewInvitation(SQLModel):
    reviewer_id: int


class ReviewUpdate(SQLModel):
    completed: bool
    review_date: Optional[date] = None
    rating: Optional[int] = Field(default=None, ge=1, le=10)
    review: Optional[str] = Field(default=None, max_length=1000)


class Unchanged(Enum):
    """Marks a review field a patch leaves as stored."""

    UNCHANGED = "unchanged"


UNCHANGED = Unchanged.UNCHANGED


class ReviewPatch(BaseModel):
    """Fields a reviewer writes on a review.

    ``completed`` is always written. Every other field is either UNCHANGED,
    which keeps the stored value, or the value to store.
    """

    model_config = ConfigDict(frozen=True)

    completed: bool
    review_date: Union[date, Unchanged] = UNCHANGED
    rating: Union[int, Unchanged] = UNCHANGED
    review: Union[str, Unchanged] = UNCHANGED

    @classmethod
    def from_update(cls, update: ReviewUpdate) -> "ReviewPatch":
        return cls(**update.model_dump(exclude_unset=True, exclude_none=True))

    def values(self) -> dict:
        values = {"completed": self.completed}
        for field in OPTIONAL_FIELDS:
            value = getattr(self, field)
            if value is not UNCHANGED:
                values[field] = value
        return values


class ReviewPage(SQLModel):
    reviews: List[Review]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.page_size) if self.page_size else 0
