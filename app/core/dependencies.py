from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.db.core import engine, get_session
from app.services.auth import TokenService
from app.services.notification import LoggingSink, NotificationDispatcher
from app.services.ownership import OwnershipGuard
from app.services.role import RoleRegistry
from app.services.product import ProductLedger
from app.services.transition import TransitionEngine

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """One dispatcher per process so deliveries stay in commit order."""
    return NotificationDispatcher(engine, sinks=[LoggingSink()])


def get_token_service() -> TokenService:
    return TokenService()


def get_ownership_guard(
    session: Session = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> OwnershipGuard:
    return OwnershipGuard(session, dispatcher)


def get_role_registry(
    session: Session = Depends(get_session),
    guard: OwnershipGuard = Depends(get_ownership_guard),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> RoleRegistry:
    return RoleRegistry(session, guard, dispatcher)


def get_product_ledger(
    session: Session = Depends(get_session),
    roles: RoleRegistry = Depends(get_role_registry),
    guard: OwnershipGuard = Depends(get_ownership_guard),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> ProductLedger:
    return ProductLedger(session, roles, guard, dispatcher)


def get_transition_engine(
    session: Session = Depends(get_session),
    ledger: ProductLedger = Depends(get_product_ledger),
    roles: RoleRegistry = Depends(get_role_registry)
) -> TransitionEngine:
    return TransitionEngine(session, ledger, roles)


def get_current_account(
    token: str = Depends(oauth2_scheme),
    service: TokenService = Depends(get_token_service)
) -> str:
    """
    Resolves the calling account from the bearer token.
    This is the gatekeeper for every route that acts on behalf of someone.
    """
    token_data = service.verify_access_token(token)

    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data.account
