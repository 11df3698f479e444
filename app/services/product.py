from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from app.core.config import BuyerAssignmentPolicy, settings
from app.core.errors import (
    AlreadyExists, InvalidArgument, InvalidRole, InvalidTransition,
    NotFound, Unauthorized
)
from app.core.locks import ProductLockRegistry, product_locks
from app.db.schema import (
    MAX_PRODUCT_ID, EventType, Product, ProductStatus, Role, StatusEvent
)
from app.models.product import ProductCreate, ProductDetail, StatusEventRead
from app.services.notification import (
    NotificationDispatcher, record_event, schedule_dispatch
)
from app.services.ownership import OwnershipGuard
from app.services.role import RoleRegistry
from app.utils.accounts import is_null_account, normalize_account

CREATION_REMARK = "created"


class ProductLedger:
    """
    Owns product records and their append-only status history.

    'current_status' is never written on its own: 'append_status' adds the
    history entry and moves the projection in the same unit of work.
    """

    def __init__(
        self,
        session: Session,
        roles: RoleRegistry,
        guard: OwnershipGuard,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy: Optional[BuyerAssignmentPolicy] = None,
        locks: ProductLockRegistry = product_locks
    ):
        self.session = session
        self.roles = roles
        self.guard = guard
        self.dispatcher = dispatcher
        self.policy = policy or settings.buyer_assignment_policy
        self.locks = locks

    # ------------------------------------------------------------------
    # Unit-of-work helpers shared with the TransitionEngine
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self, product_id: int) -> Iterator[None]:
        """
        Serializes mutations of one product. Anything raised inside the
        block discards the pending changes.
        """
        with self.locks.hold(product_id):
            try:
                yield
            except Exception:
                self.session.rollback()
                raise

    def load(self, product_id: int, for_update: bool = False) -> Product:
        if not 0 <= product_id <= MAX_PRODUCT_ID:
            raise NotFound(f"Product {product_id} not found.")

        query = (
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        product = self.session.exec(query).first()
        if not product:
            raise NotFound(f"Product {product_id} not found.")
        return product

    def append_status(
        self,
        product: Product,
        status: ProductStatus,
        remark: str,
        updater: str
    ) -> StatusEvent:
        entry = StatusEvent(
            product_id=product.id,
            sequence=self._history_length(product.id),
            status=status,
            remark=remark or "",
            updater=updater
        )
        product.history.append(entry)
        product.current_status = status

        self.session.add(entry)
        self.session.add(product)
        record_event(
            self.session,
            EventType.STATUS_UPDATED,
            product_id=product.id,
            account=updater,
            status=status.name,
            remark=entry.remark,
            updater=updater
        )
        return entry

    def _history_length(self, product_id: int) -> int:
        return self.session.exec(
            select(func.count(StatusEvent.id)).where(StatusEvent.product_id == product_id)
        ).one()

    def commit(self, product: Product) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            # Another process appended the same step first
            self.session.rollback()
            raise InvalidTransition(
                f"Product {product.id} was advanced concurrently; reload and retry.")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_product(
        self,
        caller: str,
        data: ProductCreate,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Product:
        caller = normalize_account(caller)
        if self.roles.role_of(caller) != Role.PRODUCER:
            raise Unauthorized("Only producers may add products.")
        if not 0 < data.id <= MAX_PRODUCT_ID:
            raise InvalidArgument(f"Product id must be between 1 and {MAX_PRODUCT_ID}.")
        if not data.name or not data.name.strip():
            raise InvalidArgument("Product name must not be empty.")

        with self.locked(data.id):
            if self.session.get(Product, data.id):
                raise AlreadyExists(f"Product {data.id} already exists.")

            product = Product(id=data.id, name=data.name, producer=caller)
            self.session.add(product)
            self.append_status(product, ProductStatus.PRODUCED, CREATION_REMARK, caller)
            record_event(
                self.session,
                EventType.PRODUCT_ADDED,
                product_id=product.id,
                account=caller,
                name=product.name,
                producer=caller
            )

            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                raise AlreadyExists(f"Product {data.id} already exists.")

        self.session.refresh(product)
        logger.info(f"Product {product.id} '{product.name}' created by {caller}")
        schedule_dispatch(self.dispatcher, background_tasks)
        return product

    def get_product(
        self,
        caller: str,
        product_id: int,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> ProductDetail:
        """
        Audited read: never touches the product, but records who looked.
        """
        product = self.load(product_id)
        detail = ProductDetail(
            **product.model_dump(),
            history=[StatusEventRead.model_validate(e) for e in product.history]
        )
        self._record_query(product_id, caller, background_tasks)
        return detail

    def get_history(
        self,
        caller: str,
        product_id: int,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> List[StatusEventRead]:
        product = self.load(product_id)
        history = [StatusEventRead.model_validate(e) for e in product.history]
        self._record_query(product_id, caller, background_tasks)
        return history

    def list_products(
        self,
        producer: Optional[str] = None,
        buyer: Optional[str] = None,
        status: Optional[ProductStatus] = None
    ) -> List[Product]:
        query = select(Product)
        if producer:
            query = query.where(Product.producer == producer)
        if buyer:
            query = query.where(Product.buyer == buyer)
        if status is not None:
            query = query.where(Product.current_status == status)
        query = query.order_by(Product.created_at.desc(), Product.id.desc())
        return self.session.exec(query).all()

    def assign_buyer(
        self,
        caller: str,
        product_id: int,
        buyer: str,
        remark: str = "",
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Product:
        """
        Administrator-assisted purchase: records the buyer and moves the
        product from Produced to Ordered on the buyer's behalf.
        Only available when the deployment runs the administrator policy.
        """
        if self.policy != BuyerAssignmentPolicy.ADMINISTRATOR:
            raise Unauthorized("Buyers claim products themselves in this deployment.")

        self.guard.require_administrator(caller)

        if is_null_account(buyer):
            raise InvalidArgument("Buyer must be a valid account.")
        buyer = normalize_account(buyer)

        with self.locked(product_id):
            product = self.load(product_id, for_update=True)

            if self.roles.role_of(buyer) != Role.BUYER:
                raise InvalidRole(f"Account {buyer} is not a registered buyer.")
            if product.current_status != ProductStatus.PRODUCED:
                raise InvalidTransition(
                    f"Product {product_id} is {product.current_status.name}, not PRODUCED.")
            if product.buyer is not None:
                raise Unauthorized(f"Product {product_id} already has a buyer.")

            product.buyer = buyer
            self.append_status(product, ProductStatus.ORDERED, remark, caller)
            record_event(
                self.session,
                EventType.PRODUCT_BOUGHT,
                product_id=product.id,
                account=buyer,
                buyer=buyer
            )
            self.commit(product)

        logger.info(f"Product {product_id} assigned to buyer {buyer} by {caller}")
        schedule_dispatch(self.dispatcher, background_tasks)
        return product

    def _record_query(
        self,
        product_id: int,
        caller: str,
        background_tasks: Optional[BackgroundTasks]
    ) -> None:
        caller = normalize_account(caller)
        record_event(
            self.session,
            EventType.PRODUCT_QUERIED,
            product_id=product_id,
            account=caller,
            querier=caller
        )
        self.session.commit()
        schedule_dispatch(self.dispatcher, background_tasks)
