from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Literal
from decimal import Decimal
from datetime import datetime

# ---------- products ----------
class ProductBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = ''
    price: Decimal = Field(ge=0, decimal_places=2)
    category: str = 'General'
    stock_quantity: int = Field(ge=0)
    images: List[str] = []
    is_active: bool = True
class ProductCreate(ProductBase): pass
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    category: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    images: Optional[List[str]] = None
    is_active: Optional[bool] = None
class ProductRead(ProductBase):
    id: str
    vendor_id: str
    created_at: datetime
    updated_at: datetime
    vendor_name: Optional[str] = None
    vendor_store_name: Optional[str] = None
    class Config: from_attributes = True
class ProductActiveUpdate(BaseModel):
    is_active: bool
class ImageUploadRead(BaseModel):
    path: str
    url: str

# ---------- cart ----------
class CartItemAdd(BaseModel):
    product_id: str
    qty: int = Field(default=1, ge=1)

class CartItemUpdate(BaseModel):
    qty: int = Field(ge=0)

class CartLineRead(BaseModel):
    id: str
    product_id: str
    vendor_id: str
    quantity: int
    product: ProductRead
    available: bool = True
    class Config: from_attributes = True

class CartRead(BaseModel):
    items: List[CartLineRead] = []
    vendor_id: Optional[str] = None
    subtotal: Decimal = Decimal('0')
    total_items: int = 0
    class Config: from_attributes = True

class CheckoutRequest(BaseModel):
    delivery_address: str = Field(min_length=1, max_length=500)

    @field_validator('delivery_address')
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('delivery address is required')
        return v

# ---------- orders ----------
class OrderItemIn(BaseModel):
    product_id: str
    product_name: str
    product_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)

class PlaceOrderRequest(CheckoutRequest):
    vendor_id: str
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    items: List[OrderItemIn] = Field(min_length=1)

class OrderItemRead(BaseModel):
    id: str
    order_id: str
    product_id: str
    product_name: str
    product_price: Decimal
    quantity: int
    class Config: from_attributes = True

class OrderRead(BaseModel):
    id: str
    user_id: str
    vendor_id: str
    status: str
    total_amount: Decimal
    delivery_address: str
    vendor_address_snapshot: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []
    vendor_name: Optional[str] = None
    vendor_store_name: Optional[str] = None
    class Config: from_attributes = True

class StatusUpdate(BaseModel):
    status: Literal['pending', 'accepted', 'ready_for_pickup', 'picked_up', 'delivered', 'cancelled']

# ---------- profiles ----------
class StoreProfile(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=120)
    store_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    pickup_address_line: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=120)
    state: Optional[str] = Field(default=None, max_length=120)
    zip_code: Optional[str] = Field(default=None, max_length=20)

    @field_validator('store_name')
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('store name is required')
        return v

class ProfileRead(BaseModel):
    id: str
    user_id: str
    full_name: Optional[str] = None
    store_name: Optional[str] = None
    phone: Optional[str] = None
    pickup_address_line: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    is_active: bool = True
    approval_status: Optional[str] = None
    created_at: datetime
    role: Optional[str] = None
    product_count: Optional[int] = None
    order_count: Optional[int] = None
    class Config: from_attributes = True

# ---------- admin ----------
class PlatformStats(BaseModel):
    total_users: int
    total_vendors: int
    total_delivery: int
    total_orders: int
    total_revenue: Decimal
    net_revenue: Decimal
    orders_by_status: Dict[str, int]

class VendorActiveUpdate(BaseModel):
    is_active: bool

class VendorApprovalUpdate(BaseModel):
    status: Literal['approved', 'rejected']

# ---------- session ----------
class DashboardRead(BaseModel):
    role: str
    view: str
    operations: List[str]
    read_only: bool = False
    notice: Optional[str] = None

class MeRead(BaseModel):
    user_id: str
    role: str
    profile: Optional[ProfileRead] = None
    dashboard: DashboardRead
