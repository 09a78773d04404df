"""
Order workflow.

An order is a snapshot of catalog data taken at checkout. After creation it is
only changed by status transitions and the payment flag:

    pending | pending_payment | preparing | shipped | delivered | cancelled | refunded

Any status may follow any other. Entering ``delivered`` marks the order paid,
and so does entering ``preparing`` while a cash-on-delivery order is unpaid.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import HTTPException
from pymongo.errors import PyMongoError

from database import create_document, next_sequence, run_in_transaction
from schemas import Order as OrderSchema, OrderItem
from services.catalog_service import display_name, effective_price, find_product, first_image

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "pending_payment", "preparing", "shipped", "delivered", "cancelled", "refunded")
ORDER_SEQUENCE = "order_id"

SUMMARY_FIELDS = (
    "order_id", "status", "total", "payment_method", "delivery_method",
    "created_at", "email", "is_paid", "shipping_info",
)


def format_order_id(value: int) -> str:
    return f"ORD{value:04d}"


def _money(value) -> float:
    return round(float(value or 0), 2)


def find_order(db, ref: str):
    if ObjectId.is_valid(ref):
        order = db["order"].find_one({"_id": ObjectId(ref)})
        if order:
            return order
    return db["order"].find_one({"order_id": ref})


def get_order_or_404(db, ref: str) -> Dict[str, Any]:
    order = find_order(db, ref)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def owner_filter(account: Dict[str, Any]) -> Dict[str, Any]:
    return {"$or": [{"user_id": str(account["_id"])}, {"email": account["email"]}]}


def can_view(account: Dict[str, Any], order: Dict[str, Any]) -> bool:
    if account.get("role") == "admin":
        return True
    return order.get("email") == account.get("email") or order.get("user_id") == str(account["_id"])


def snapshot_items(db, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Copy name, image and current effective price of each product into the order."""
    snapshots = []
    for item in items:
        product = find_product(db, item["product_id"])
        if not product:
            raise HTTPException(status_code=404, detail=f"Product with id {item['product_id']} not found")
        snapshots.append(OrderItem(
            product_id=str(product["_id"]),
            name=display_name(product),
            image=first_image(product),
            quantity=int(item.get("quantity") or 1),
            price=effective_price(product),
        ).model_dump())
    return snapshots


def place_order(db, account: Dict[str, Any], request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create an order from the request and clear the account's cart.

    The monetary breakdown is stored as the client supplied it. Only a missing
    subtotal or total is filled in, from the snapshot prices and the other
    figures. The insert and the cart clear form one unit:
    a transaction when enabled, otherwise the order is deleted again if the
    cart cannot be cleared.
    """
    items = request.get("items") or []
    shipping_info = request.get("shipping_info")
    if not shipping_info or not items:
        raise HTTPException(status_code=400, detail="Shipping information and items are required")

    ordered_items = snapshot_items(db, items)
    shipping = _money(request.get("shipping"))
    tax = _money(request.get("tax"))
    discount = _money(request.get("discount"))
    cod_fee = _money(request.get("cod_fee"))
    subtotal = request.get("subtotal")
    if subtotal is None:
        subtotal = sum(i["price"] * i["quantity"] for i in ordered_items)
    subtotal = _money(subtotal)
    total = request.get("total")
    if total is None:
        total = subtotal + shipping + tax + cod_fee - discount
    total = _money(total)

    payment_method = request.get("payment_method") or "card"
    is_cod = payment_method == "cod"
    now = datetime.utcnow()

    order = OrderSchema(
        order_id=format_order_id(next_sequence(db, ORDER_SEQUENCE)),
        email=account["email"],
        user_id=str(account["_id"]),
        ordered_items=ordered_items,
        shipping_info=shipping_info,
        customer_name=f"{shipping_info['first_name']} {shipping_info['last_name']}",
        payment_method=payment_method,
        delivery_method=request.get("delivery_method") or "standard",
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        cod_fee=cod_fee,
        total=total,
        status="pending_payment" if is_cod else "preparing",
        is_paid=not is_cod,
        paid_at=None if is_cod else now,
        notes=request.get("order_notes"),
        gift_message=request.get("gift_message"),
        order_notes=request.get("order_notes"),
    )

    def commit(session):
        doc = create_document(db, "order", order, session=session)
        try:
            db["cart"].update_one(
                {"user_id": str(account["_id"])},
                {"$set": {"items": [], "total": 0, "updated_at": now}},
                session=session,
            )
        except PyMongoError:
            logger.error(f"Clearing cart failed for order {doc['order_id']}, rolling the order back")
            db["order"].delete_one({"_id": doc["_id"]}, session=session)
            raise
        return doc

    doc = run_in_transaction(db, commit)
    logger.info(f"Order created: {doc['order_id']} for {account['email']} ({payment_method}, total {total})")
    return doc


def update_status(db, ref: str, status: str, notes: str = None) -> Dict[str, Any]:
    if status not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status. Valid statuses are: " + ", ".join(ORDER_STATUSES))
    order = get_order_or_404(db, ref)

    now = datetime.utcnow()
    update: Dict[str, Any] = {"status": status, "updated_at": now}
    if notes:
        update["notes"] = notes
    if status == "delivered":
        update["is_paid"] = True
        update["paid_at"] = now
    # Accepting a cash-on-delivery order for preparation confirms its payment
    if status == "preparing" and order.get("payment_method") == "cod" and not order.get("is_paid"):
        update["is_paid"] = True
        update["paid_at"] = now

    db["order"].update_one({"_id": order["_id"]}, {"$set": update})
    logger.info(f"Order {order['order_id']} status {order.get('status')} -> {status}")
    return db["order"].find_one({"_id": order["_id"]})


def mark_paid(db, ref: str) -> Dict[str, Any]:
    order = get_order_or_404(db, ref)
    now = datetime.utcnow()
    db["order"].update_one(
        {"_id": order["_id"]},
        {"$set": {"is_paid": True, "paid_at": now, "status": "preparing", "updated_at": now}},
    )
    logger.info(f"Order {order['order_id']} marked as paid")
    return db["order"].find_one({"_id": order["_id"]})


def quote(db, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Price a prospective order against current catalog prices. Nothing is stored."""
    if not items:
        raise HTTPException(status_code=400, detail="Items array is required")
    lines = []
    total = 0.0
    label_total = 0.0
    for item in items:
        product = find_product(db, item["product_id"])
        if not product:
            raise HTTPException(status_code=404, detail=f"Product with id {item['product_id']} not found")
        price = effective_price(product)
        label_price = float(product.get("price") or 0)
        quantity = int(item.get("quantity") or 1)
        total += price * quantity
        label_total += label_price * quantity
        lines.append({
            "product_id": str(product["_id"]),
            "name": display_name(product),
            "price": price,
            "label_price": label_price,
            "quantity": quantity,
            "image": first_image(product),
        })
    return {"ordered_items": lines, "total": _money(total), "label_total": _money(label_total)}


def summarize(order: Dict[str, Any]) -> Dict[str, Any]:
    summary = {"id": str(order["_id"])}
    summary.update({k: order.get(k) for k in SUMMARY_FIELDS})
    summary["items_count"] = len(order.get("ordered_items") or [])
    info = order.get("shipping_info")
    summary["customer_name"] = f"{info['first_name']} {info['last_name']}" if info else "Unknown Customer"
    return summary
