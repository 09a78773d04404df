from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from database import get_db
from security import require_permission
from services import accounts_service
from utils import doc_to_public

router = APIRouter()

manage_customers = require_permission("manage_customers")


class StatusRequest(BaseModel):
    is_blocked: bool
    reason: Optional[str] = None


@router.get("")
def list_customers(
    page: int = 1,
    limit: int = 10,
    search: str = "",
    status: str = "all",
    sort_by: str = "created_at",
    sort_order: str = "desc",
    admin=Depends(manage_customers),
    db=Depends(get_db),
):
    result = accounts_service.list_accounts(db, "customer", page, limit, search, status, sort_by, sort_order)
    return {
        "success": True,
        "message": "Customers retrieved successfully",
        "customers": result["accounts"],
        "pagination": result["pagination"],
        "stats": accounts_service.account_stats(db, "customer"),
    }


@router.get("/stats")
def customer_stats(admin=Depends(manage_customers), db=Depends(get_db)):
    return {
        "success": True,
        "message": "Customer statistics retrieved successfully",
        "stats": accounts_service.account_stats(db, "customer"),
    }


@router.get("/{customer_id}")
def get_customer(customer_id: str, admin=Depends(manage_customers), db=Depends(get_db)):
    customer = accounts_service.get_account_or_404(db, customer_id, "customer")
    return {"success": True, "message": "Customer retrieved successfully", "customer": doc_to_public(customer)}


@router.put("/{customer_id}/status")
def update_customer_status(customer_id: str, body: StatusRequest, admin=Depends(manage_customers), db=Depends(get_db)):
    customer = accounts_service.get_account_or_404(db, customer_id, "customer")
    updated = accounts_service.set_blocked(db, customer, admin, body.is_blocked, body.reason)
    return {
        "success": True,
        "message": f"Customer {'blocked' if body.is_blocked else 'unblocked'} successfully",
        "customer": doc_to_public(updated),
    }


@router.delete("/{customer_id}")
def delete_customer(customer_id: str, admin=Depends(manage_customers), db=Depends(get_db)):
    customer = accounts_service.get_account_or_404(db, customer_id, "customer")
    accounts_service.soft_delete(db, customer, admin)
    return {"success": True, "message": "Customer deleted successfully"}
