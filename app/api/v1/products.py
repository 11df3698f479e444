from typing import List, Optional
from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import (
    get_current_account, get_product_ledger, get_transition_engine
)
from app.db.schema import Product, ProductStatus
from app.models.product import (
    ProductCreate,
    ProductSummary,
    ProductDetail,
    StatusEventRead,
    TransitionRequest,
    TransitionRemark,
    TransitionAck,
    BuyerAssignment
)
from app.services.product import ProductLedger
from app.services.transition import TransitionEngine

router = APIRouter()


def _ack(product: Product) -> TransitionAck:
    return TransitionAck(
        id=product.id,
        status=product.current_status,
        history_length=len(product.history)
    )

# ==============================================================================
# PRODUCT LEDGER
# ==============================================================================


@router.get("/", response_model=List[ProductSummary])
def list_products(
    producer: Optional[str] = None,
    buyer: Optional[str] = None,
    current_status: Optional[ProductStatus] = None,
    ledger: ProductLedger = Depends(get_product_ledger)
):
    """
    List products, newest first. Optional filters by producer, buyer or status.
    Listing does not expose history and is not audited.
    """
    return ledger.list_products(producer=producer, buyer=buyer, status=current_status)


@router.post("/", response_model=ProductSummary, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    ledger: ProductLedger = Depends(get_product_ledger)
):
    """
    Register a new product. Producers only.
    The product starts as PRODUCED with a single 'created' history entry.
    """
    return ledger.create_product(current_account, data, background_tasks)


@router.get("/{product_id}", response_model=ProductDetail)
def get_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    ledger: ProductLedger = Depends(get_product_ledger)
):
    """
    Get a product with its full status history.
    Every call is recorded as a ProductQueried notification naming the caller.
    """
    return ledger.get_product(current_account, product_id, background_tasks)


@router.get("/{product_id}/history", response_model=List[StatusEventRead])
def get_product_history(
    product_id: int,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    ledger: ProductLedger = Depends(get_product_ledger)
):
    """
    The audit trail only, oldest entry first. Audited like a product read.
    """
    return ledger.get_history(current_account, product_id, background_tasks)


@router.put("/{product_id}/buyer", response_model=TransitionAck)
def assign_buyer(
    product_id: int,
    data: BuyerAssignment,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    ledger: ProductLedger = Depends(get_product_ledger)
):
    """
    Administrator assigns a registered Buyer and moves the product to ORDERED.
    Only available in deployments running the 'administrator' buyer policy.
    """
    product = ledger.assign_buyer(
        current_account, product_id, data.buyer, data.remark, background_tasks)
    return _ack(product)

# ==============================================================================
# STATUS TRANSITIONS
# ==============================================================================


@router.post("/{product_id}/transitions", response_model=TransitionAck)
def request_transition(
    product_id: int,
    data: TransitionRequest,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    engine: TransitionEngine = Depends(get_transition_engine)
):
    """
    Move a product to the next status.
    - ORDERED: a Buyer claims an unclaimed product.
    - SHIPPED: a Transporter ships an ordered product.
    - DELIVERED: the product's own Buyer confirms receipt.
    """
    product = engine.request_transition(
        current_account, product_id, data.target_status, data.remark, background_tasks)
    return _ack(product)


@router.post("/{product_id}/buy", response_model=TransitionAck)
def buy_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    data: TransitionRemark = TransitionRemark(),
    current_account: str = Depends(get_current_account),
    engine: TransitionEngine = Depends(get_transition_engine)
):
    product = engine.buy_product(
        current_account, product_id, data.remark, background_tasks)
    return _ack(product)


@router.post("/{product_id}/ship", response_model=TransitionAck)
def ship_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    data: TransitionRemark = TransitionRemark(),
    current_account: str = Depends(get_current_account),
    engine: TransitionEngine = Depends(get_transition_engine)
):
    product = engine.ship_product(
        current_account, product_id, data.remark, background_tasks)
    return _ack(product)


@router.post("/{product_id}/receive", response_model=TransitionAck)
def receive_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    data: TransitionRemark = TransitionRemark(),
    current_account: str = Depends(get_current_account),
    engine: TransitionEngine = Depends(get_transition_engine)
):
    product = engine.receive_product(
        current_account, product_id, data.remark, background_tasks)
    return _ack(product)
