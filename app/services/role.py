from typing import Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy import update
from sqlmodel import Session

from app.core.errors import AlreadyAssigned, InvalidArgument
from app.db.schema import EventType, Role, RoleAssignment
from app.models.role import RoleAssignmentRead
from app.services.notification import (
    NotificationDispatcher, record_event, schedule_dispatch
)
from app.services.ownership import OwnershipGuard
from app.utils.accounts import is_null_account, normalize_account


class RoleRegistry:
    def __init__(
        self,
        session: Session,
        guard: OwnershipGuard,
        dispatcher: Optional[NotificationDispatcher] = None
    ):
        self.session = session
        self.guard = guard
        self.dispatcher = dispatcher

    def get_role(self, account: str) -> RoleAssignmentRead:
        """Never fails: unknown accounts hold the 'none' role with no name."""
        account = normalize_account(account)
        assignment = self.session.get(RoleAssignment, account, populate_existing=True)
        if not assignment:
            return RoleAssignmentRead(account=account, role=Role.NONE, display_name="")
        return RoleAssignmentRead.model_validate(assignment)

    def role_of(self, account: str) -> Role:
        return self.get_role(account).role

    def assign_role(
        self,
        caller: str,
        account: str,
        role: Role,
        display_name: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> RoleAssignmentRead:
        """
        Administrator grants, changes or revokes a role.
        Overwrites whatever the account held before.
        """
        self.guard.require_administrator(caller)

        if is_null_account(account):
            raise InvalidArgument("Account must be a valid identifier.")
        if role == Role.BUYER:
            raise InvalidArgument("Buyers must register themselves.")
        if not display_name or not display_name.strip():
            raise InvalidArgument("Display name must not be empty.")

        assignment = self._put(normalize_account(account), role, display_name)
        self.session.commit()
        self.session.refresh(assignment)

        logger.info(f"Role {role.value} assigned to {assignment.account} by {caller}")
        schedule_dispatch(self.dispatcher, background_tasks)
        return RoleAssignmentRead.model_validate(assignment)

    def register_as_buyer(
        self,
        caller: str,
        display_name: str,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> RoleAssignmentRead:
        """
        Self-service, one time and irreversible: any account that holds no
        role yet may become a Buyer. No administrator involved.

        The claim is a conditional write: a role the administrator grants
        between the read and the write is never overwritten.
        """
        caller = normalize_account(caller)
        current = self.session.get(RoleAssignment, caller, populate_existing=True)
        if current and current.role != Role.NONE:
            raise AlreadyAssigned("Account already holds a role.")
        if not display_name or not display_name.strip():
            raise InvalidArgument("Display name must not be empty.")

        if current:
            claimed = self.session.connection().execute(
                update(RoleAssignment)
                .where(RoleAssignment.account == caller, RoleAssignment.role == Role.NONE)
                .values(role=Role.BUYER, display_name=display_name)
            )
            if claimed.rowcount != 1:
                self.session.rollback()
                raise AlreadyAssigned("Account already holds a role.")
        else:
            self.session.add(RoleAssignment(
                account=caller, role=Role.BUYER, display_name=display_name))

        record_event(
            self.session,
            EventType.ROLE_ASSIGNED,
            account=caller,
            role=Role.BUYER,
            display_name=display_name
        )
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent registration of the same account won the insert
            self.session.rollback()
            raise AlreadyAssigned("Account already holds a role.")
        assignment = self.session.get(RoleAssignment, caller, populate_existing=True)

        logger.info(f"Account {caller} registered as buyer")
        schedule_dispatch(self.dispatcher, background_tasks)
        return RoleAssignmentRead.model_validate(assignment)

    def _put(self, account: str, role: Role, display_name: str) -> RoleAssignment:
        assignment = self.session.get(RoleAssignment, account)
        if assignment:
            assignment.role = role
            assignment.display_name = display_name
        else:
            assignment = RoleAssignment(
                account=account, role=role, display_name=display_name)

        self.session.add(assignment)
        record_event(
            self.session,
            EventType.ROLE_ASSIGNED,
            account=account,
            role=role,
            display_name=display_name
        )
        return assignment
