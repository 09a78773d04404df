from fastapi import APIRouter, Depends
from pydantic import BaseModel

from database import get_db
from security import get_current_user
from services import wishlist_service

router = APIRouter()


class AddWishlistRequest(BaseModel):
    product_id: str


@router.get("")
def get_wishlist(current=Depends(get_current_user), db=Depends(get_db)):
    wishlist = wishlist_service.get_wishlist(db, str(current["_id"]))
    message = "Wishlist retrieved successfully" if wishlist["items"] else "Wishlist is empty"
    return {"success": True, "message": message, "wishlist": wishlist}


@router.post("")
def add_to_wishlist(body: AddWishlistRequest, current=Depends(get_current_user), db=Depends(get_db)):
    wishlist = wishlist_service.add_product(db, str(current["_id"]), body.product_id)
    return {"success": True, "message": "Product added to wishlist", "wishlist": wishlist}


@router.delete("/item/{product_ref}")
def remove_from_wishlist(product_ref: str, current=Depends(get_current_user), db=Depends(get_db)):
    wishlist = wishlist_service.remove_product(db, str(current["_id"]), product_ref)
    return {"success": True, "message": "Product removed from wishlist", "wishlist": wishlist}


@router.delete("/clear")
def clear_wishlist(current=Depends(get_current_user), db=Depends(get_db)):
    wishlist = wishlist_service.clear(db, str(current["_id"]))
    return {"success": True, "message": "Wishlist cleared successfully", "wishlist": wishlist}


@router.get("/check/{product_ref}")
def check_in_wishlist(product_ref: str, current=Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, **wishlist_service.contains(db, str(current["_id"]), product_ref)}


@router.get("/count")
def wishlist_count(current=Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, "count": wishlist_service.count(db, str(current["_id"]))}
