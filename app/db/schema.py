from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship, JSON
from sqlalchemy import BigInteger, Column, ForeignKey, UniqueConstraint


class Role(str, Enum):
    NONE = "none"
    PRODUCER = "producer"
    TRANSPORTER = "transporter"
    BUYER = "buyer"


class ProductStatus(int, Enum):
    """
    Lifecycle stages in their fixed order.
    The integer value is the stage ordinal; a product only ever moves to
    the stage whose value is exactly one higher than its current one.
    """
    PRODUCED = 0
    ORDERED = 1
    SHIPPED = 2
    DELIVERED = 3

    def successor(self) -> Optional["ProductStatus"]:
        try:
            return ProductStatus(self.value + 1)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self.successor() is None


class EventType(str, Enum):
    PRODUCT_ADDED = "product_added"
    STATUS_UPDATED = "status_updated"
    PRODUCT_QUERIED = "product_queried"
    ROLE_ASSIGNED = "role_assigned"
    PRODUCT_BOUGHT = "product_bought"
    PRODUCT_RECEIVED = "product_received"
    ADMINISTRATOR_TRANSFERRED = "administrator_transferred"


class TimestampMixin(SQLModel):
    """
    Standard audit timestamps for mutable records.
    """
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="The exact UTC timestamp when this record was first persisted. Example: '2023-10-27 14:30:00'"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow},
        description="The exact UTC timestamp when this record was last modified. Updates automatically."
    )


class RoleAssignment(TimestampMixin, SQLModel, table=True):
    """
    The role an account holds in the supply chain.
    Exactly one row per account; reassignment overwrites it. Accounts
    without a row implicitly hold the 'none' role.
    """
    account: str = Field(
        primary_key=True,
        max_length=128,
        description="Opaque account identifier (public key, wallet address or user id). Example: '0x5B38Da6a701c568545dCfcB03FcB875f56beddC4'"
    )
    role: Role = Field(
        default=Role.NONE,
        description="Capability class of the account. Example: 'transporter'"
    )
    display_name: str = Field(
        default="",
        description="Human readable name shown next to the account. Example: 'Acme Freight'"
    )


class AdministratorHandle(TimestampMixin, SQLModel, table=True):
    """
    The single privileged account allowed to assign roles.
    Stored as a singleton row; only ever replaced by an explicit transfer.
    """
    id: int = Field(default=1, primary_key=True)
    account: str = Field(
        max_length=128,
        description="The current administrator account."
    )


# Largest id the signed 64-bit key column can hold
MAX_PRODUCT_ID = 2**63 - 1


class Product(SQLModel, table=True):
    """
    A physical item tracked through the supply chain.
    'current_status' is a projection of the last StatusEvent in 'history'
    and is only ever written together with a new history entry.
    """
    id: int = Field(
        sa_column=Column(BigInteger, primary_key=True, autoincrement=False),
        description="Caller supplied, non-zero, globally unique product id. Example: 1"
    )
    name: str = Field(
        description="Product name. Example: 'Widget'"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the producer registered the product."
    )
    current_status: ProductStatus = Field(
        default=ProductStatus.PRODUCED,
        index=True,
        description="Status of the most recent StatusEvent."
    )
    producer: str = Field(
        index=True,
        max_length=128,
        description="Account that created the product. Never changes."
    )
    buyer: Optional[str] = Field(
        default=None,
        index=True,
        max_length=128,
        description="Account that ordered the product. Written once."
    )

    history: List["StatusEvent"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={"order_by": "StatusEvent.sequence"}
    )


class StatusEvent(SQLModel, table=True):
    """
    One immutable entry of a product's audit trail.
    At most one entry per (product, status) pair, which makes a second
    concurrent writer of the same step fail at the database as well.
    """
    __table_args__ = (
        UniqueConstraint("product_id", "status",
                         name="uq_statusevent_product_status"),
        UniqueConstraint("product_id", "sequence",
                         name="uq_statusevent_product_sequence"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("product.id"),
                         index=True, nullable=False),
        description="The product this entry belongs to."
    )
    sequence: int = Field(
        description="Position of this entry in the product history, starting at 0."
    )
    status: ProductStatus = Field(
        description="The status the product entered."
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the status change was committed."
    )
    remark: str = Field(
        default="",
        description="Free text supplied by the updater. Example: 'Left warehouse 4'"
    )
    updater: str = Field(
        max_length=128,
        description="Account that performed the status change."
    )

    product: Product = Relationship(back_populates="history")


class NotificationEvent(SQLModel, table=True):
    """
    Outbox of notifications for downstream consumers.
    Written in the same transaction as the mutation it describes, so ids
    follow commit order. 'delivered_at' is set once every sink accepted it.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    event_type: EventType = Field(index=True)
    product_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, index=True, nullable=True)
    )
    account: Optional[str] = Field(
        default=None,
        index=True,
        max_length=128,
        description="The account the event is about (creator, updater, buyer, querier, assignee)."
    )
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_type=JSON
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    delivered_at: Optional[datetime] = Field(default=None, index=True)
