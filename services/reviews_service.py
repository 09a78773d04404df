"""
Review moderation.

Reviews start ``pending`` and only count towards a product's rating once
``approved`` and not ``hidden``. Every change that can alter that set
(approval in or out, hiding an approved review, deletion) recomputes the
product's ``rating`` and ``review_count``.
"""

import logging
import re
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from database import create_document
from schemas import Review as ReviewSchema
from services.catalog_service import get_product_or_404
from utils import doc_to_public, page_params, to_object_id, total_pages

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("pending", "approved", "rejected")
PUBLIC_HIDDEN_FIELDS = ("hidden", "status", "admin_comment")


def visible_filter(product_id: str) -> Dict[str, Any]:
    return {"product_id": product_id, "status": "approved", "hidden": False}


def recompute_product_rating(db, product_id: str) -> Dict[str, Any]:
    ratings = [r["rating"] for r in db["review"].find(visible_filter(product_id), {"rating": 1})]
    if ratings:
        aggregate = {"rating": round(sum(ratings) / len(ratings), 1), "review_count": len(ratings)}
    else:
        aggregate = {"rating": 0, "review_count": 0}
    if ObjectId.is_valid(product_id):
        db["product"].update_one({"_id": ObjectId(product_id)}, {"$set": aggregate})
    return aggregate


def get_review_or_404(db, review_id: str) -> Dict[str, Any]:
    review = db["review"].find_one({"_id": to_object_id(review_id, "Review not found")})
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


def submit_review(db, account: Dict[str, Any], product_ref: str, text: str, rating: int, user_name: Optional[str] = None) -> Dict[str, Any]:
    if not product_ref or not text or not rating:
        raise HTTPException(status_code=400, detail="product_id, review, and rating are required")
    if rating < 1 or rating > 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")
    product = get_product_or_404(db, product_ref)
    product_id = str(product["_id"])
    user_id = str(account["_id"])

    if db["review"].find_one({"product_id": product_id, "user_id": user_id}):
        raise HTTPException(status_code=400, detail="You have already reviewed this product")

    review = ReviewSchema(
        product_id=product_id,
        user_id=user_id,
        email=account["email"],
        user_name=user_name or account.get("first_name") or account["email"].split("@")[0],
        review=text,
        rating=rating,
        status="pending",
    )
    try:
        doc = create_document(db, "review", review)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="You have already reviewed this product")
    logger.info(f"Review submitted for product {product['product_id']} by {account['email']}")
    return doc


def set_status(db, review_id: str, status: str, admin_comment: Optional[str] = None) -> Dict[str, Any]:
    if status not in REVIEW_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status. Must be 'pending', 'approved', or 'rejected'")
    review = get_review_or_404(db, review_id)
    previous = review.get("status")

    update: Dict[str, Any] = {"status": status}
    if admin_comment:
        update["admin_comment"] = admin_comment
    db["review"].update_one({"_id": review["_id"]}, {"$set": update})

    if previous == "approved" or status == "approved":
        recompute_product_rating(db, review["product_id"])
    logger.info(f"Review {review['_id']} {previous} -> {status}")
    return db["review"].find_one({"_id": review["_id"]})


def set_hidden(db, review_id: str, hidden: bool) -> Dict[str, Any]:
    review = get_review_or_404(db, review_id)
    db["review"].update_one({"_id": review["_id"]}, {"$set": {"hidden": hidden}})
    if review.get("status") == "approved":
        recompute_product_rating(db, review["product_id"])
    logger.info(f"Review {review['_id']} hidden={hidden}")
    return db["review"].find_one({"_id": review["_id"]})


def delete_review(db, review_id: str) -> None:
    review = get_review_or_404(db, review_id)
    db["review"].delete_one({"_id": review["_id"]})
    recompute_product_rating(db, review["product_id"])
    logger.info(f"Review {review['_id']} deleted")


def product_reviews(db, product_ref: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Public view: approved, visible reviews with histogram and average."""
    product = get_product_or_404(db, product_ref)
    query = visible_filter(str(product["_id"]))
    page, limit, skip = page_params(page, limit)

    cursor = db["review"].find(query).sort("created_at", -1).skip(skip).limit(limit)
    reviews = []
    for doc in cursor:
        public = doc_to_public(doc)
        for field in PUBLIC_HIDDEN_FIELDS:
            public.pop(field, None)
        reviews.append(public)

    total = db["review"].count_documents(query)
    distribution = {
        str(row["_id"]): row["count"]
        for row in db["review"].aggregate([
            {"$match": query},
            {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
            {"$sort": {"_id": -1}},
        ])
    }
    average = list(db["review"].aggregate([
        {"$match": query},
        {"$group": {"_id": None, "average": {"$avg": "$rating"}, "count": {"$sum": 1}}},
    ]))

    return {
        "reviews": reviews,
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": total_pages(total, limit)},
        "rating_distribution": distribution,
        "average_rating": round(average[0]["average"], 1) if average else 0,
        "total_reviews": average[0]["count"] if average else 0,
    }


def list_reviews(db, page: int = 1, limit: int = 20, status: Optional[str] = None, product_ref: Optional[str] = None, search: Optional[str] = None) -> Dict[str, Any]:
    """Admin view over every review, with the reviewed product attached."""
    query: Dict[str, Any] = {}
    if status:
        query["status"] = status
    if product_ref:
        query["product_id"] = str(get_product_or_404(db, product_ref)["_id"])
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"email": {"$regex": pattern, "$options": "i"}},
            {"user_name": {"$regex": pattern, "$options": "i"}},
            {"review": {"$regex": pattern, "$options": "i"}},
        ]
    page, limit, skip = page_params(page, limit)

    reviews = []
    for doc in db["review"].find(query).sort("created_at", -1).skip(skip).limit(limit):
        public = doc_to_public(doc)
        product = None
        if ObjectId.is_valid(doc["product_id"]):
            product = db["product"].find_one(
                {"_id": ObjectId(doc["product_id"])},
                {"product_id": 1, "product_name": 1, "name": 1, "images": 1},
            )
        public["product"] = doc_to_public(product)
        reviews.append(public)

    total = db["review"].count_documents(query)
    return {
        "reviews": reviews,
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": total_pages(total, limit)},
    }


def user_review_status(db, account: Dict[str, Any], product_ref: str) -> str:
    product = get_product_or_404(db, product_ref)
    review = db["review"].find_one({"product_id": str(product["_id"]), "user_id": str(account["_id"])})
    return review["status"] if review else "none"
