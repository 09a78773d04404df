from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import HTTPException

from database import create_document
from schemas import Cart as CartSchema, CartItem
from services.catalog_service import display_name, effective_price, find_product, first_image, get_product_or_404


def cart_total(items: List[Dict[str, Any]]) -> float:
    return round(sum(float(i.get("price", 0)) * int(i.get("quantity", 0)) for i in items), 2)


def get_or_create_cart(db, user_id: str) -> Dict[str, Any]:
    cart = db["cart"].find_one({"user_id": user_id})
    if not cart:
        cart = create_document(db, "cart", CartSchema(user_id=user_id))
    return cart


def save_items(db, cart: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Persist items with a freshly recomputed total."""
    cart["items"] = items
    cart["total"] = cart_total(items)
    cart["updated_at"] = datetime.utcnow()
    db["cart"].update_one(
        {"_id": cart["_id"]},
        {"$set": {"items": items, "total": cart["total"], "updated_at": cart["updated_at"]}},
    )
    return cart


def get_cart_or_404(db, user_id: str) -> Dict[str, Any]:
    cart = db["cart"].find_one({"user_id": user_id})
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    return cart


def add_item(db, user_id: str, product_ref: str, quantity: int = 1) -> Dict[str, Any]:
    if quantity < 1:
        raise HTTPException(status_code=400, detail="Valid quantity is required")
    product = get_product_or_404(db, product_ref)
    stock = int(product.get("stock", 0))
    if stock < quantity:
        raise HTTPException(status_code=400, detail=f"Only {stock} items available in stock")

    cart = get_or_create_cart(db, user_id)
    items = list(cart.get("items", []))
    product_id = str(product["_id"])
    for item in items:
        if item.get("product_id") == product_id:
            if stock < item["quantity"] + quantity:
                raise HTTPException(status_code=400, detail=f"Cannot add more items. Only {stock} available in stock")
            item["quantity"] += quantity
            break
    else:
        items.append(CartItem(
            item_id=str(ObjectId()),
            product_id=product_id,
            quantity=quantity,
            price=effective_price(product),
            name=display_name(product),
            image=first_image(product),
            category=product.get("category"),
            original_price=product.get("original_price"),
            last_price=product.get("last_price"),
        ).model_dump())
    return save_items(db, cart, items)


def update_item(db, user_id: str, item_id: str, quantity: int) -> Dict[str, Any]:
    if not quantity or quantity < 1:
        raise HTTPException(status_code=400, detail="Valid quantity is required")
    cart = get_cart_or_404(db, user_id)
    items = list(cart.get("items", []))
    item = next((i for i in items if i.get("item_id") == item_id), None)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found in cart")

    # Always checked against current stock, not the stock at add time
    product = find_product(db, item["product_id"])
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    stock = int(product.get("stock", 0))
    if stock < quantity:
        raise HTTPException(status_code=400, detail=f"Only {stock} items available in stock")
    item["quantity"] = quantity
    return save_items(db, cart, items)


def remove_item(db, user_id: str, item_id: str) -> Dict[str, Any]:
    cart = get_cart_or_404(db, user_id)
    items = [i for i in cart.get("items", []) if i.get("item_id") != item_id]
    if len(items) == len(cart.get("items", [])):
        raise HTTPException(status_code=404, detail="Item not found in cart")
    return save_items(db, cart, items)


def clear_cart(db, user_id: str) -> Dict[str, Any]:
    cart = get_cart_or_404(db, user_id)
    return save_items(db, cart, [])


def item_count(db, user_id: str) -> int:
    cart = db["cart"].find_one({"user_id": user_id})
    if not cart:
        return 0
    return sum(int(i.get("quantity", 0)) for i in cart.get("items", []))
