from typing import List, Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from app.db.schema import MAX_PRODUCT_ID, ProductStatus


class ProductCreate(SQLModel):
    id: int = Field(
        ge=0,
        le=MAX_PRODUCT_ID,
        description="Caller supplied product id. Must be non-zero and unused."
    )
    name: str = Field(
        max_length=200,
        schema_extra={"examples": ["Widget"]},
        description="Product name."
    )


class ProductSummary(SQLModel):
    """Basic Product View"""
    id: int
    name: str
    created_at: datetime
    current_status: ProductStatus
    producer: str
    buyer: Optional[str] = None


class StatusEventRead(SQLModel):
    sequence: int
    status: ProductStatus
    timestamp: datetime
    remark: str
    updater: str


class ProductDetail(ProductSummary):
    """
    The full product record including its audit trail, oldest entry first.
    """
    history: List[StatusEventRead] = []


class TransitionRequest(SQLModel):
    target_status: ProductStatus = Field(
        description="The status to move to. Must be the immediate successor of the current status."
    )
    remark: str = Field(
        default="",
        max_length=500,
        schema_extra={"examples": ["Picked up from warehouse 4"]},
    )


class TransitionRemark(SQLModel):
    remark: str = Field(default="", max_length=500)


class BuyerAssignment(SQLModel):
    buyer: str = Field(
        max_length=128,
        description="Account with the Buyer role that becomes the product's buyer."
    )
    remark: str = Field(default="", max_length=500)


class TransitionAck(SQLModel):
    id: int
    status: ProductStatus
    history_length: int
