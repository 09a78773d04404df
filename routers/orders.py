from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from database import get_db
from schemas import DeliveryMethod, PaymentMethod, ShippingInfo
from security import get_current_user, require_customer, require_permission
from services import orders_service
from utils import doc_to_public

router = APIRouter()

manage_orders = require_permission("manage_orders")


# ----------------------------------------------------------------------------
# Models (request bodies)
# ----------------------------------------------------------------------------

class OrderLine(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class OrderCreateRequest(BaseModel):
    shipping_info: Optional[ShippingInfo] = None
    items: List[OrderLine] = []
    payment_method: PaymentMethod = "card"
    delivery_method: DeliveryMethod = "standard"
    subtotal: Optional[float] = Field(None, ge=0)
    shipping: float = Field(0, ge=0)
    tax: float = Field(0, ge=0)
    discount: float = Field(0, ge=0)
    cod_fee: float = Field(0, ge=0)
    total: Optional[float] = Field(None, ge=0)
    gift_message: Optional[str] = None
    order_notes: Optional[str] = None


class QuoteRequest(BaseModel):
    items: List[OrderLine] = []


class StatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = None


# ----------------------------------------------------------------------------
# Customer endpoints
# ----------------------------------------------------------------------------

@router.post("", status_code=201)
def create_order(body: OrderCreateRequest, current=Depends(require_customer), db=Depends(get_db)):
    order = orders_service.place_order(db, current, body.model_dump())
    return {
        "success": True,
        "message": "Order created successfully",
        "order": {
            "id": str(order["_id"]),
            "order_id": order["order_id"],
            "status": order["status"],
            "total": order["total"],
            "payment_method": order["payment_method"],
            "delivery_method": order["delivery_method"],
            "created_at": order["created_at"],
        },
        "order_details": doc_to_public(order),
    }


@router.get("/my-orders")
def my_orders(current=Depends(get_current_user), db=Depends(get_db)):
    cursor = db["order"].find(orders_service.owner_filter(current)).sort("created_at", -1)
    orders = [doc_to_public(o) for o in cursor]
    return {"success": True, "count": len(orders), "orders": orders}


@router.post("/quote")
def get_quote(body: QuoteRequest, db=Depends(get_db)):
    quote = orders_service.quote(db, [line.model_dump() for line in body.items])
    return {"success": True, **quote}


@router.get("")
def list_orders(current=Depends(get_current_user), db=Depends(get_db)):
    role = current.get("role")
    if role == "admin":
        query = {}
    elif role == "customer":
        query = orders_service.owner_filter(current)
    else:
        raise HTTPException(status_code=403, detail="Access denied")
    orders = [orders_service.summarize(o) for o in db["order"].find(query).sort("created_at", -1)]
    return {"success": True, "count": len(orders), "orders": orders}


@router.get("/{order_ref}")
def get_order(order_ref: str, current=Depends(get_current_user), db=Depends(get_db)):
    order = orders_service.get_order_or_404(db, order_ref)
    if not orders_service.can_view(current, order):
        raise HTTPException(status_code=403, detail="Access denied. You can only view your own orders.")
    return {"success": True, "order": doc_to_public(order)}


# ----------------------------------------------------------------------------
# Admin endpoints
# ----------------------------------------------------------------------------

@router.put("/{order_ref}/status")
def update_order_status(order_ref: str, body: StatusUpdateRequest, admin=Depends(manage_orders), db=Depends(get_db)):
    order = orders_service.update_status(db, order_ref, body.status, body.notes)
    return {
        "success": True,
        "message": f"Order status updated to {body.status}",
        "order": {
            "id": str(order["_id"]),
            "order_id": order["order_id"],
            "status": order["status"],
            "updated_at": order.get("updated_at"),
            "is_paid": order.get("is_paid"),
            "paid_at": order.get("paid_at"),
            "notes": order.get("notes"),
        },
    }


@router.put("/{order_ref}/mark-paid")
def mark_order_paid(order_ref: str, admin=Depends(manage_orders), db=Depends(get_db)):
    order = orders_service.mark_paid(db, order_ref)
    return {
        "success": True,
        "message": "Order marked as paid",
        "order": {
            "id": str(order["_id"]),
            "order_id": order["order_id"],
            "is_paid": order["is_paid"],
            "paid_at": order["paid_at"],
            "status": order["status"],
        },
    }
