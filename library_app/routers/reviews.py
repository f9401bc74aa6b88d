"""Book review endpoints. Guests may post; only the author or an admin may edit or delete."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..deps import get_library, get_optional_user, get_reviews
from ..library import Library
from ..reviews import ReviewBoard
from ..schemas import ReviewCreateRequest, ReviewUpdateRequest
from ..user import User

router = APIRouter()


def update_review(reviews: ReviewBoard, review_id: int, payload: ReviewUpdateRequest) -> dict:
    try:
        review = reviews.update(review_id, rating=payload.rating, comment=payload.comment)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    return review.to_dict()


def _owned_review(reviews: ReviewBoard, review_id: int, user: Optional[User], action: str):
    review = reviews.get(review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if not user or (review.userId != user.id and not user.is_admin):
        raise HTTPException(status_code=403, detail=f"You don't have permission to {action} this review")
    return review


@router.get("/books/{book_id}/reviews")
def get_book_reviews(book_id: int, reviews: ReviewBoard = Depends(get_reviews)):
    return [r.to_dict() for r in reviews.list_for_book(book_id)]


@router.post("/books/{book_id}/reviews", status_code=status.HTTP_201_CREATED)
def create_review(book_id: int, payload: ReviewCreateRequest, user: Optional[User] = Depends(get_optional_user),
                  library: Library = Depends(get_library), reviews: ReviewBoard = Depends(get_reviews)):
    if not library.get_book(book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    try:
        review = reviews.create(book_id, payload.username or "", payload.rating, payload.comment or "",
                                user_id=user.id if user else None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return review.to_dict()


@router.put("/reviews/{review_id}")
def update_own_review(review_id: int, payload: ReviewUpdateRequest,
                      user: Optional[User] = Depends(get_optional_user),
                      reviews: ReviewBoard = Depends(get_reviews)):
    _owned_review(reviews, review_id, user, "update")
    return update_review(reviews, review_id, payload)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_own_review(review_id: int, user: Optional[User] = Depends(get_optional_user),
                      reviews: ReviewBoard = Depends(get_reviews)):
    _owned_review(reviews, review_id, user, "delete")
    reviews.delete(review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
