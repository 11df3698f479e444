from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlmodel import Session

from app.core.config import BuyerAssignmentPolicy
from app.core.errors import InvalidTransition, Unauthorized
from app.db.schema import EventType, Product, ProductStatus, Role
from app.services.notification import record_event, schedule_dispatch
from app.services.product import ProductLedger
from app.services.role import RoleRegistry
from app.utils.accounts import normalize_account

# A guard returns the reason a caller may not take an edge, or None.
Guard = Callable[[Product, str], Optional[str]]


def _unclaimed(product: Product, caller: str) -> Optional[str]:
    if product.buyer is not None:
        return f"Product {product.id} already has a buyer."
    return None


def _is_buyer_of(product: Product, caller: str) -> Optional[str]:
    if product.buyer != caller:
        return f"Only the buyer of product {product.id} may receive it."
    return None


def _always(product: Product, caller: str) -> Optional[str]:
    return None


@dataclass(frozen=True)
class TransitionRule:
    source: ProductStatus
    target: ProductStatus
    role: Role
    guard: Guard = _always
    claims_buyer: bool = False
    announces: Optional[EventType] = None


# Keyed by target: under the strict successor rule the target alone
# identifies the edge.
TRANSITIONS: Dict[ProductStatus, TransitionRule] = {
    ProductStatus.ORDERED: TransitionRule(
        source=ProductStatus.PRODUCED,
        target=ProductStatus.ORDERED,
        role=Role.BUYER,
        guard=_unclaimed,
        claims_buyer=True,
        announces=EventType.PRODUCT_BOUGHT,
    ),
    ProductStatus.SHIPPED: TransitionRule(
        source=ProductStatus.ORDERED,
        target=ProductStatus.SHIPPED,
        role=Role.TRANSPORTER,
    ),
    ProductStatus.DELIVERED: TransitionRule(
        source=ProductStatus.SHIPPED,
        target=ProductStatus.DELIVERED,
        role=Role.BUYER,
        guard=_is_buyer_of,
        announces=EventType.PRODUCT_RECEIVED,
    ),
}


def _check_table() -> None:
    for status in ProductStatus:
        successor = status.successor()
        if successor is None:
            continue
        rule = TRANSITIONS.get(successor)
        if rule is None or rule.source != status:
            raise RuntimeError(f"No transition rule leads out of {status.name}.")


_check_table()


class TransitionEngine:
    """
    Applies the product lifecycle state machine.

    Checks run in a fixed order so callers can tell failures apart:
    unknown product (NotFound), target not the immediate successor
    (InvalidTransition), wrong role or failed edge guard (Unauthorized).
    Nothing is written unless every check passes.
    """

    def __init__(self, session: Session, ledger: ProductLedger, roles: RoleRegistry):
        self.session = session
        self.ledger = ledger
        self.roles = roles

    def request_transition(
        self,
        caller: str,
        product_id: int,
        target: ProductStatus,
        remark: str = "",
        background_tasks: Optional[BackgroundTasks] = None
    ) -> Product:
        caller = normalize_account(caller)
        with self.ledger.locked(product_id):
            product = self.ledger.load(product_id, for_update=True)
            rule = self._rule_for(product, target)

            if self.roles.role_of(caller) != rule.role:
                logger.warning(
                    f"Transition {rule.source.name}->{rule.target.name} on product "
                    f"{product_id} rejected: {caller} is not a {rule.role.value}")
                raise Unauthorized(
                    f"Moving a product to {target.name} requires the {rule.role.value} role.")

            reason = rule.guard(product, caller)
            if reason:
                logger.warning(f"Transition on product {product_id} rejected: {reason}")
                raise Unauthorized(reason)

            if rule.claims_buyer:
                if self.ledger.policy == BuyerAssignmentPolicy.ADMINISTRATOR:
                    raise Unauthorized(
                        "Buyers are assigned by the administrator in this deployment.")
                product.buyer = caller

            self.ledger.append_status(product, target, remark, caller)
            if rule.announces:
                record_event(
                    self.session,
                    rule.announces,
                    product_id=product.id,
                    account=product.buyer,
                    buyer=product.buyer
                )
            self.ledger.commit(product)

        logger.info(f"Product {product_id} moved to {target.name} by {caller}")
        schedule_dispatch(self.ledger.dispatcher, background_tasks)
        return product

    def buy_product(self, caller: str, product_id: int, remark: str = "",
                    background_tasks: Optional[BackgroundTasks] = None) -> Product:
        return self.request_transition(
            caller, product_id, ProductStatus.ORDERED, remark, background_tasks)

    def ship_product(self, caller: str, product_id: int, remark: str = "",
                     background_tasks: Optional[BackgroundTasks] = None) -> Product:
        return self.request_transition(
            caller, product_id, ProductStatus.SHIPPED, remark, background_tasks)

    def receive_product(self, caller: str, product_id: int, remark: str = "",
                        background_tasks: Optional[BackgroundTasks] = None) -> Product:
        return self.request_transition(
            caller, product_id, ProductStatus.DELIVERED, remark, background_tasks)

    def _rule_for(self, product: Product, target: ProductStatus) -> TransitionRule:
        current = product.current_status
        successor = current.successor()

        if successor is None:
            raise InvalidTransition(
                f"Product {product.id} is {current.name}; no further transitions exist.")
        if target != successor:
            raise InvalidTransition(
                f"Product {product.id} is {current.name}; the only allowed next status is {successor.name}.")

        return TRANSITIONS[target]
