from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from database import get_db
from security import get_current_user, require_customer, require_permission
from services import reviews_service
from utils import doc_to_public

router = APIRouter()

manage_reviews = require_permission("manage_reviews")


class ReviewCreateRequest(BaseModel):
    product_id: str
    review: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    user_name: Optional[str] = None


class ReviewStatusRequest(BaseModel):
    status: str
    admin_comment: Optional[str] = None


class ReviewVisibilityRequest(BaseModel):
    hidden: bool


@router.post("", status_code=201)
def submit_review(body: ReviewCreateRequest, current=Depends(require_customer), db=Depends(get_db)):
    review = reviews_service.submit_review(db, current, body.product_id, body.review, body.rating, body.user_name)
    return {"success": True, "message": "Review submitted for admin approval", "review": doc_to_public(review)}


@router.get("/product/{product_ref}")
def product_reviews(product_ref: str, page: int = 1, limit: int = 10, db=Depends(get_db)):
    return {"success": True, **reviews_service.product_reviews(db, product_ref, page, limit)}


@router.get("/user-check")
def check_user_review(product_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, "status": reviews_service.user_review_status(db, current, product_id)}


@router.get("")
def list_reviews(
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    product_id: Optional[str] = None,
    search: Optional[str] = None,
    admin=Depends(manage_reviews),
    db=Depends(get_db),
):
    return {"success": True, **reviews_service.list_reviews(db, page, limit, status, product_id, search)}


@router.patch("/{review_id}/status")
def update_review_status(review_id: str, body: ReviewStatusRequest, admin=Depends(manage_reviews), db=Depends(get_db)):
    review = reviews_service.set_status(db, review_id, body.status, body.admin_comment)
    return {"success": True, "message": f"Review {body.status} successfully", "review": doc_to_public(review)}


@router.patch("/{review_id}/visibility")
def toggle_review_visibility(review_id: str, body: ReviewVisibilityRequest, admin=Depends(manage_reviews), db=Depends(get_db)):
    review = reviews_service.set_hidden(db, review_id, body.hidden)
    return {"success": True, "message": "Review visibility updated.", "review": doc_to_public(review)}


@router.delete("/{review_id}")
def delete_review(review_id: str, admin=Depends(manage_reviews), db=Depends(get_db)):
    reviews_service.delete_review(db, review_id)
    return {"success": True, "message": "Review deleted successfully"}
