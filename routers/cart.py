from fastapi import APIRouter, Depends
from pydantic import BaseModel

from database import get_db
from security import get_current_user, get_optional_user
from services import cart_service
from utils import doc_to_public

router = APIRouter()


class AddCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateCartRequest(BaseModel):
    quantity: int


@router.get("")
def get_cart(current=Depends(get_current_user), db=Depends(get_db)):
    cart = cart_service.get_or_create_cart(db, str(current["_id"]))
    # Total is always recomputed from the lines
    cart = cart_service.save_items(db, cart, list(cart.get("items", [])))
    return {"success": True, "message": "Cart retrieved successfully", "cart": doc_to_public(cart)}


@router.get("/count")
def cart_count(current=Depends(get_optional_user), db=Depends(get_db)):
    if not current:
        return {"count": 0}
    return {"count": cart_service.item_count(db, str(current["_id"]))}


@router.post("/add")
def add_to_cart(body: AddCartRequest, current=Depends(get_current_user), db=Depends(get_db)):
    cart = cart_service.add_item(db, str(current["_id"]), body.product_id, body.quantity)
    return {"success": True, "message": "Item added to cart successfully", "cart": doc_to_public(cart)}


@router.put("/{item_id}")
def update_cart_item(item_id: str, body: UpdateCartRequest, current=Depends(get_current_user), db=Depends(get_db)):
    cart = cart_service.update_item(db, str(current["_id"]), item_id, body.quantity)
    return {"success": True, "message": "Cart updated successfully", "cart": doc_to_public(cart)}


@router.delete("/{item_id}")
def remove_cart_item(item_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    cart = cart_service.remove_item(db, str(current["_id"]), item_id)
    return {"success": True, "message": "Item removed from cart successfully", "cart": doc_to_public(cart)}


@router.delete("")
def clear_cart(current=Depends(get_current_user), db=Depends(get_db)):
    cart = cart_service.clear_cart(db, str(current["_id"]))
    return {"success": True, "message": "Cart cleared successfully", "cart": doc_to_public(cart)}
