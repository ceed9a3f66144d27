from contextlib import asynccontextmanager
from typing import List, Optional, Tuple

from sqlalchemy import Row, delete, func, insert, literal, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select
import logging

from ..errors import AlreadyAssignedError, ConflictError, DataAccessError
from ..models import Film, Review, User

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = (
    Review.film_id,
    Review.reviewer_id,
    Review.completed,
    Review.review_date,
    Review.rating,
    Review.review,
)

review_table = Review.__table__


def film_lock(film_id: int):
    """Row lock on a film, held until the transaction ends.

    Renders ``SELECT ... FOR UPDATE`` on PostgreSQL. SQLite has no row locks
    and serializes writers on its own.
    """
    return select(Film.id).where(Film.id == film_id).with_for_update()


class ReviewStore:
    """Parameterized reads and writes on the review, film and user tables.

    Every failure of the underlying database is raised as DataAccessError,
    a uniqueness violation on insert as ConflictError. Mutations commit
    immediately.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Constraint violated during {operation}: {e.orig}")
            raise ConflictError(f"Conflicting data for {operation}") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Store failure during {operation}: {str(e)}")
            raise DataAccessError(f"Store failure during {operation}") from e

    async def query_reviews_by_film(self, film_id: int, offset: int, limit: int) -> Tuple[List[Review], int]:
        async with self._guard("review listing"):
            result = await self.session.execute(
                select(*REVIEW_COLUMNS)
                .where(Review.film_id == film_id)
                .order_by(Review.reviewer_id)
                .offset(offset)
                .limit(limit)
            )
            reviews = [Review.from_row(row) for row in result.mappings()]
        total = await self.count_reviews_by_film(film_id)
        return reviews, total

    async def count_reviews_by_film(self, film_id: int) -> int:
        async with self._guard("review count"):
            result = await self.session.execute(
                select(func.count()).select_from(Review).where(Review.film_id == film_id)
            )
            return result.scalar_one()

    async def query_review_by_key(self, film_id: int, reviewer_id: int) -> Optional[Review]:
        async with self._guard("review lookup"):
            result = await self.session.execute(
                select(*REVIEW_COLUMNS).where(Review.film_id == film_id, Review.reviewer_id == reviewer_id)
            )
            row = result.mappings().first()
        return Review.from_row(row) if row is not None else None

    async def query_review_ownership(self, film_id: int, reviewer_id: int) -> Optional[Row]:
        """Owner of the film joined with the completion flag of the review."""
        async with self._guard("review ownership lookup"):
            result = await self.session.execute(
                select(Film.owner, Review.completed)
                .join(Review, Review.film_id == Film.id)
                .where(Film.id == film_id, Review.reviewer_id == reviewer_id)
            )
            return result.first()

    async def query_film_owner_and_privacy(self, film_id: int) -> Optional[Row]:
        async with self._guard("film lookup"):
            result = await self.session.execute(select(Film.owner, Film.private).where(Film.id == film_id))
            return result.first()

    async def query_user_exists(self, user_id: int) -> bool:
        async with self._guard("user lookup"):
            result = await self.session.execute(select(User.id).where(User.id == user_id))
            return result.first() is not None

    async def insert_review(self, film_id: int, reviewer_id: int, only_if_unassigned: bool = False) -> None:
        """Insert a pending review for the pair.

        With ``only_if_unassigned`` the film row is locked for the rest of the
        transaction and the review is written only when the film has no review
        yet. A second writer waits on the lock and then sees the first
        writer's row, so a film never gets two reviewers this way.
        """
        if only_if_unassigned:
            already_assigned = (
                select(review_table.c.film_id).where(review_table.c.film_id == film_id).correlate(None).exists()
            )
            statement = insert(review_table).from_select(
                ["film_id", "reviewer_id", "completed"],
                select(literal(film_id), literal(reviewer_id), literal(False)).where(~already_assigned),
            )
        else:
            statement = insert(review_table).values(film_id=film_id, reviewer_id=reviewer_id, completed=False)

        async with self._guard("review insert"):
            if only_if_unassigned:
                await self.session.execute(film_lock(film_id))
            result = await self.session.execute(statement)
            await self.session.commit()
        if result.rowcount == 0:
            raise AlreadyAssignedError(f"Film {film_id} already has a reviewer")

    async def update_review(self, film_id: int, reviewer_id: int, values: dict) -> int:
        async with self._guard("review update"):
            result = await self.session.execute(
                update(review_table)
                .where(review_table.c.film_id == film_id, review_table.c.reviewer_id == reviewer_id)
                .values(**values)
            )
            await self.session.commit()
        return result.rowcount

    async def delete_review(self, film_id: int, reviewer_id: int) -> int:
        async with self._guard("review delete"):
            result = await self.session.execute(
                delete(review_table).where(review_table.c.film_id == film_id, review_table.c.reviewer_id == reviewer_id)
            )
            await self.session.commit()
        return result.rowcount

    async def query_unassigned_films(self, owner: int) -> List[int]:
        async with self._guard("unassigned film scan"):
            result = await self.session.execute(
                select(Film.id)
                .outerjoin(Review, col(Review.film_id) == Film.id)
                .where(Film.owner == owner, col(Review.film_id).is_(None))
                .order_by(Film.id)
            )
            return list(result.scalars().all())

    async def query_reviewer_load_counts(self, exclude: Optional[int] = None) -> List[Tuple[int, int]]:
        """Number of reviews held by every user, lightest first.

        Users holding no review are listed with a load of 0.
        """
        load = func.count(Review.film_id)
        query = (
            select(User.id, load.label("load"))
            .outerjoin(Review, col(Review.reviewer_id) == User.id)
            .group_by(User.id)
            .order_by(load, User.id)
        )
        if exclude is not None:
            query = query.where(User.id != exclude)
        async with self._guard("reviewer load count"):
            result = await self.session.execute(query)
            return [(reviewer_id, count) for reviewer_id, count in result.all()]
