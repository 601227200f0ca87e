"""Unit tests for roles, the pause switch and the reentrancy guard."""
from __future__ import annotations

import asyncio

import pytest

from collateral_engine.access import EngineContext, ReentrancyGuard, RoleRegistry
from collateral_engine.errors import (
    AlreadyPaused,
    ConcurrentCall,
    NotPaused,
    Paused,
    ReentrantCall,
    Unauthorized,
)
from collateral_engine.models import LifecycleState, Role

from ..factories import ADMIN, ALICE, MALLORY, FakeClock


class TestRoleRegistry:
    def test_initial_grants(self, roles: RoleRegistry) -> None:
        assert roles.has_role(ADMIN, Role.ADMIN)
        assert not roles.has_role(ALICE, Role.ADMIN)

    def test_admin_grants_and_revokes(self, roles: RoleRegistry) -> None:
        roles.grant_role(ADMIN, ALICE, Role.LIQUIDATOR)
        assert roles.has_role(ALICE, Role.LIQUIDATOR)
        assert ALICE in roles.members(Role.LIQUIDATOR)

        roles.revoke_role(ADMIN, ALICE, Role.LIQUIDATOR)
        assert not roles.has_role(ALICE, Role.LIQUIDATOR)

    def test_non_admin_cannot_grant(self, roles: RoleRegistry) -> None:
        with pytest.raises(Unauthorized) as exc:
            roles.grant_role(MALLORY, MALLORY, Role.ADMIN)
        assert exc.value.role == "admin"
        assert not roles.has_role(MALLORY, Role.ADMIN)

    def test_non_admin_cannot_revoke(self, roles: RoleRegistry) -> None:
        with pytest.raises(Unauthorized):
            roles.revoke_role(MALLORY, ADMIN, Role.ADMIN)
        assert roles.has_role(ADMIN, Role.ADMIN)

    def test_accepts_role_names(self) -> None:
        r = RoleRegistry({"minter": ["m"]})  # type: ignore[dict-item]
        assert r.has_role("m", Role.MINTER)


class TestLifecycle:
    def test_initially_active(self, context: EngineContext) -> None:
        assert context.lifecycle is LifecycleState.ACTIVE
        context.require_not_paused()

    def test_pause_and_unpause(self, context: EngineContext) -> None:
        context.pause(ADMIN)
        assert context.paused
        with pytest.raises(Paused):
            context.require_not_paused()

        context.unpause(ADMIN)
        assert not context.paused
        assert [e.name for e in context.events] == ["Paused", "Unpaused"]

    def test_only_admin_pauses(self, context: EngineContext) -> None:
        with pytest.raises(Unauthorized):
            context.pause(MALLORY)
        assert not context.paused

    def test_redundant_transitions_rejected(self, context: EngineContext) -> None:
        with pytest.raises(NotPaused):
            context.unpause(ADMIN)
        context.pause(ADMIN)
        with pytest.raises(AlreadyPaused):
            context.pause(ADMIN)

    def test_contexts_are_isolated(self, roles: RoleRegistry) -> None:
        a = EngineContext(auth=roles, clock=FakeClock())
        b = EngineContext(auth=roles, clock=FakeClock())
        a.pause(ADMIN)
        assert a.paused
        assert not b.paused


class TestReentrancyGuard:
    def test_nested_entry_rejected(self) -> None:
        guard = ReentrancyGuard()
        with guard.hold("positions"):
            assert guard.is_held("positions")
            with pytest.raises(ReentrantCall):
                with guard.hold("positions"):
                    pass
        assert not guard.is_held("positions")

    def test_released_on_error(self) -> None:
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("positions"):
                raise RuntimeError("boom")
        assert not guard.is_held("positions")

    def test_scopes_are_independent(self) -> None:
        guard = ReentrancyGuard()
        with guard.hold("positions"):
            with guard.hold("oracle"):
                assert guard.is_held("oracle")

    @pytest.mark.asyncio
    async def test_other_task_gets_concurrent_call(self) -> None:
        guard = ReentrancyGuard()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder() -> None:
            with guard.hold("positions"):
                entered.set()
                await release.wait()

        task = asyncio.create_task(holder())
        await entered.wait()
        with pytest.raises(ConcurrentCall) as exc:
            with guard.hold("positions"):
                pass
        assert exc.value.scope == "positions"

        release.set()
        await task
        assert not guard.is_held("positions")

    @pytest.mark.asyncio
    async def test_same_task_gets_reentrant_call(self) -> None:
        guard = ReentrancyGuard()
        with guard.hold("positions"):
            with pytest.raises(ReentrantCall):
                with guard.hold("positions"):
                    pass
