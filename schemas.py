"""
Database Schemas for the Storefront API

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name by default.

We store:
- User (customer, admin and staff accounts)
- Product
- Cart (one per account, snapshot line items)
- Order
- Review
- Wishlist (one per account, live product references)

References between collections are stored as string ids.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["customer", "admin", "staff"]
Category = Literal["perfumes", "skincare", "makeup", "tools", "all"]
Benefit = Literal["hydrating", "anti-aging", "brightening", "soothing", "calming", "energizing"]
SkinType = Literal["dry", "oily", "combination", "sensitive", "normal"]
ScentFamily = Literal["woody", "floral", "oriental", "fresh", "spicy"]
Permission = Literal[
    "manage_products",
    "manage_orders",
    "manage_customers",
    "manage_admins",
    "manage_reviews",
    "view_analytics",
    "manage_settings",
    "manage_promotions",
    "manage_categories",
]
OrderStatus = Literal["pending", "pending_payment", "preparing", "shipped", "delivered", "cancelled", "refunded"]
PaymentMethod = Literal["card", "paypal", "cod"]
DeliveryMethod = Literal["standard", "express", "overnight", "free"]
ReviewStatus = Literal["pending", "approved", "rejected"]

DEFAULT_PROFILE_PIC = "https://cdn.pixabay.com/photo/2015/10/05/22/37/blank-profile-picture-973460_1280.png"


class StatusNote(BaseModel):
    date: datetime = Field(default_factory=datetime.utcnow)
    action: str
    reason: Optional[str] = None
    performed_by: Optional[str] = Field(None, description="Account id of the actor")


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    email: EmailStr = Field(..., description="Email address, unique")
    first_name: str
    last_name: str

    # Stored in DB, never returned in public responses
    password_hash: str = Field(..., description="BCrypt hash of the password")

    role: Role = "customer"
    is_blocked: bool = False
    profile_pic: str = DEFAULT_PROFILE_PIC

    # Admin specific fields
    is_super_admin: bool = False
    permissions: List[Permission] = Field(default_factory=list)

    # Audit fields
    created_by: Optional[str] = None
    last_login: Optional[datetime] = None
    status_notes: List[StatusNote] = Field(default_factory=list)

    # Soft delete
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    product_id: str = Field(..., description="Human readable id, e.g. PRD0001; immutable")
    product_name: str
    name: str
    alt_names: List[str] = Field(default_factory=list)
    category: Category = "all"
    images: List[str] = Field(default_factory=list, description="Image URLs")
    price: float = Field(..., ge=0, description="List price")
    original_price: Optional[float] = Field(None, ge=0)
    last_price: float = Field(..., ge=0, description="Effective selling price")
    description: str
    detailed_description: Optional[str] = None
    stock: int = Field(0, ge=0, description="Available inventory")
    rating: float = Field(0, ge=0, le=5, description="Average of approved, visible reviews")
    review_count: int = Field(0, ge=0)
    is_new: bool = False
    is_best_seller: bool = False
    features: List[str] = Field(default_factory=list)
    benefits: List[Benefit] = Field(default_factory=list)
    skin_type: List[SkinType] = Field(default_factory=list)
    scent_family: List[ScentFamily] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list, description="Search tags")


class CartItem(BaseModel):
    item_id: str = Field(..., description="Line id within the cart")
    product_id: str = Field(..., description="Product storage id")
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0, description="Snapshot of the effective price when added")
    name: str
    image: str = ""
    category: Optional[str] = None
    original_price: Optional[float] = None
    last_price: Optional[float] = None


class Cart(BaseModel):
    """
    Carts collection schema
    Collection name: "cart"
    """
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    total: float = 0


class OrderItem(BaseModel):
    product_id: str
    name: str
    image: str = ""
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class ShippingInfo(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    address: str
    apartment: Optional[str] = None
    city: str
    state: str
    zip_code: str
    country: str = "United States"


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    order_id: str = Field(..., description="Human readable id, e.g. ORD0001")
    email: EmailStr
    user_id: str
    ordered_items: List[OrderItem]
    shipping_info: ShippingInfo
    customer_name: str
    payment_method: PaymentMethod = "card"
    delivery_method: DeliveryMethod = "standard"
    subtotal: float = 0
    shipping: float = 0
    tax: float = 0
    discount: float = 0
    cod_fee: float = 0
    total: float = 0
    status: OrderStatus = "preparing"
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    gift_message: Optional[str] = None
    order_notes: Optional[str] = None


class Review(BaseModel):
    """
    Reviews collection schema
    Collection name: "review"
    One review per (product_id, user_id).
    """
    product_id: str
    user_id: str
    email: EmailStr
    user_name: str
    review: str
    rating: int = Field(..., ge=1, le=5)
    status: ReviewStatus = "pending"
    hidden: bool = False
    admin_comment: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)


class WishlistItem(BaseModel):
    product_id: str = Field(..., description="Product storage id")
    added_at: datetime = Field(default_factory=datetime.utcnow)


class Wishlist(BaseModel):
    """
    Wishlists collection schema
    Collection name: "wishlist"
    """
    user_id: str
    items: List[WishlistItem] = Field(default_factory=list)
