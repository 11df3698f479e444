from typing import Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlmodel import Session

from app.core.errors import InvalidArgument, NotFound, Unauthorized
from app.db.schema import AdministratorHandle, EventType
from app.services.notification import (
    NotificationDispatcher, record_event, schedule_dispatch
)
from app.utils.accounts import is_null_account, normalize_account

HANDLE_ID = 1


class OwnershipGuard:
    """
    Owns the single administrator account.
    Every privileged check reads through here; the handle is only replaced
    by 'transfer_administrator'.
    """

    def __init__(self, session: Session, dispatcher: Optional[NotificationDispatcher] = None):
        self.session = session
        self.dispatcher = dispatcher

    def _handle(self) -> Optional[AdministratorHandle]:
        return self.session.get(AdministratorHandle, HANDLE_ID)

    def bootstrap(self, account: str) -> AdministratorHandle:
        """
        Installs the first administrator. Idempotent: an existing handle is
        never overwritten, so restarting with a different setting is harmless.
        """
        handle = self._handle()
        if handle:
            return handle

        if is_null_account(account):
            raise InvalidArgument("Bootstrap administrator account is not set.")

        handle = AdministratorHandle(id=HANDLE_ID, account=normalize_account(account))
        self.session.add(handle)
        self.session.commit()
        self.session.refresh(handle)
        logger.info(f"Administrator bootstrapped: {handle.account}")
        return handle

    def current_administrator(self) -> str:
        handle = self._handle()
        if not handle:
            raise NotFound("No administrator has been bootstrapped.")
        return handle.account

    def is_administrator(self, account: str) -> bool:
        handle = self._handle()
        return handle is not None and handle.account == normalize_account(account)

    def require_administrator(self, caller: str) -> None:
        if not self.is_administrator(caller):
            logger.warning(f"Privileged call rejected for {caller}")
            raise Unauthorized("Only the administrator may perform this operation.")

    def transfer_administrator(
        self,
        caller: str,
        new_admin: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> str:
        self.require_administrator(caller)

        if is_null_account(new_admin):
            raise InvalidArgument("New administrator must be a valid account.")

        handle = self._handle()
        previous = handle.account
        handle.account = normalize_account(new_admin)
        self.session.add(handle)
        record_event(
            self.session,
            EventType.ADMINISTRATOR_TRANSFERRED,
            account=handle.account,
            previous=previous,
            current=handle.account
        )
        self.session.commit()

        logger.info(f"Administrator transferred from {previous} to {handle.account}")
        schedule_dispatch(self.dispatcher, background_tasks)
        return handle.account
