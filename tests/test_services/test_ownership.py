"""Tests for the administrator handle."""

import pytest

from app.core.errors import InvalidArgument, NotFound, Unauthorized
from app.db.schema import Role
from app.services.ownership import OwnershipGuard

from conftest import ADMIN, PRODUCER, STRANGER


class TestBootstrap:

    def test_bootstrap_sets_first_administrator(self, session):
        guard = OwnershipGuard(session)
        guard.bootstrap(ADMIN)
        assert guard.current_administrator() == ADMIN

    def test_bootstrap_never_overwrites(self, session):
        guard = OwnershipGuard(session)
        guard.bootstrap(ADMIN)
        guard.bootstrap(STRANGER)
        assert guard.current_administrator() == ADMIN

    def test_bootstrap_rejects_null_account(self, session):
        with pytest.raises(InvalidArgument):
            OwnershipGuard(session).bootstrap("0x0000000000000000000000000000000000000000")

    def test_no_administrator_before_bootstrap(self, session):
        with pytest.raises(NotFound):
            OwnershipGuard(session).current_administrator()


class TestTransferAdministrator:

    def test_transfer_moves_privilege(self, registry):
        registry.guard.transfer_administrator(ADMIN, STRANGER)

        assert registry.guard.current_administrator() == STRANGER
        assert registry.guard.is_administrator(STRANGER)
        assert not registry.guard.is_administrator(ADMIN)

    def test_previous_administrator_loses_rights_immediately(self, registry):
        registry.guard.transfer_administrator(ADMIN, STRANGER)

        with pytest.raises(Unauthorized):
            registry.roles.assign_role(ADMIN, PRODUCER, Role.PRODUCER, "Acme Farms")

        registry.roles.assign_role(STRANGER, PRODUCER, Role.PRODUCER, "Acme Farms")
        assert registry.roles.role_of(PRODUCER) == Role.PRODUCER

    def test_only_administrator_can_transfer(self, registry):
        with pytest.raises(Unauthorized):
            registry.guard.transfer_administrator(STRANGER, STRANGER)
        assert registry.guard.current_administrator() == ADMIN

    @pytest.mark.parametrize("new_admin", ["", "   ", "0", "0x0000000000000000000000000000000000000000"])
    def test_transfer_to_null_account_rejected(self, registry, new_admin):
        with pytest.raises(InvalidArgument):
            registry.guard.transfer_administrator(ADMIN, new_admin)
        assert registry.guard.current_administrator() == ADMIN

    def test_transfer_emits_notification(self, registry, sink):
        registry.guard.transfer_administrator(ADMIN, STRANGER)

        event = sink.events[-1]
        assert event.event_type.value == "administrator_transferred"
        assert event.payload == {"previous": ADMIN, "current": STRANGER}
