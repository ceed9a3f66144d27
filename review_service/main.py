from fastapi import FastAPI, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from .auth import get_current_user_id
from .database.db import get_session, wait_for_db
from .errors import ReviewServiceError
from .models import AssignmentReport, Review, ReviewInvitation, ReviewPatch, ReviewUpdate
from .services import BalancedAssignmentEngine, ReviewLifecycleManager, ReviewStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Review service",
    description="API for film review invitations and balanced reviewer assignment",
    version="1.0.0"
)


@app.on_event("startup")
async def startup():
    await wait_for_db()
    logger.info("Review service started")


@app.exception_handler(ReviewServiceError)
async def review_service_error_handler(request: Request, exc: ReviewServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code}
    )


def get_lifecycle(session: AsyncSession = Depends(get_session)) -> ReviewLifecycleManager:
    return ReviewLifecycleManager(ReviewStore(session))


def get_assignment_engine(lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)) -> BalancedAssignmentEngine:
    return BalancedAssignmentEngine(lifecycle, lifecycle.store)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "reviews"}


@app.get("/films/{film_id}/reviews",
         summary="List the reviews of a movie")
async def list_reviews(
        request: Request,
        film_id: int,
        page_no: Optional[int] = Query(None, ge=1, description="Page number, 1 when omitted"),
        lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)
):
    page = await lifecycle.list_reviews(film_id, page_no)
    body = {
        "total_pages": page.total_pages,
        "current_page": page.page,
        "total_items": page.total,
        "reviews": [review.model_dump(mode="json") for review in page.reviews],
    }
    if page.page < page.total_pages:
        body["next"] = str(request.url.include_query_params(page_no=page.page + 1))
    return body


@app.get("/films/{film_id}/reviews/{reviewer_id}",
         response_model=Review,
         summary="Get the review of a movie by reviewer",
         responses={
             404: {"description": "The review was not found"}
         })
async def get_review(
        film_id: int,
        reviewer_id: int,
        lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)
):
    return await lifecycle.get_review(film_id, reviewer_id)


@app.post("/films/{film_id}/reviews",
          response_model=Review,
          status_code=status.HTTP_201_CREATED,
          summary="Invite a reviewer to review a movie",
          responses={
              403: {"description": "The caller does not own the movie"},
              404: {"description": "The movie was not found"},
              409: {"description": "Unknown reviewer or already invited"}
          })
async def issue_invitation(
        film_id: int,
        invitation: ReviewInvitation,
        user_id: int = Depends(get_current_user_id),
        lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)
):
    return await lifecycle.issue_invitation(invitation.reviewer_id, film_id, user_id)


@app.put("/films/{film_id}/reviews/{reviewer_id}",
         status_code=status.HTTP_204_NO_CONTENT,
         summary="Complete or update a review",
         responses={
             403: {"description": "The caller is not the invited reviewer"},
             404: {"description": "The review was not found"}
         })
async def update_review(
        film_id: int,
        reviewer_id: int,
        review_data: ReviewUpdate,
        user_id: int = Depends(get_current_user_id),
        lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)
):
    await lifecycle.update_review(ReviewPatch.from_update(review_data), film_id, reviewer_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/films/{film_id}/reviews/{reviewer_id}",
            status_code=status.HTTP_204_NO_CONTENT,
            summary="Revoke a review invitation",
            responses={
                403: {"description": "Not the owner, or the review is already completed"},
                404: {"description": "The review was not found"}
            })
async def delete_invitation(
        film_id: int,
        reviewer_id: int,
        user_id: int = Depends(get_current_user_id),
        lifecycle: ReviewLifecycleManager = Depends(get_lifecycle)
):
    await lifecycle.delete_invitation(film_id, reviewer_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/films/assignments",
          response_model=AssignmentReport,
          summary="Assign unassigned movies of the caller to the least loaded reviewers")
async def assign_balanced(
        user_id: int = Depends(get_current_user_id),
        engine: BalancedAssignmentEngine = Depends(get_assignment_engine)
):
    return await engine.assign_balanced(user_id)
