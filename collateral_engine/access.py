"""Access and lifecycle guard — roles, pause switch and reentrancy marker."""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from .errors import (
    AlreadyPaused,
    ConcurrentCall,
    NotPaused,
    Paused,
    ReentrantCall,
    Unauthorized,
)
from .events import EventLog
from .interfaces.authorization import AuthorizationProvider
from .models import LifecycleState, Role

logger = logging.getLogger(__name__)


def system_clock() -> int:
    return int(time.time())


class RoleRegistry:
    """In-memory role assignments; grants and revocations are admin-only."""

    def __init__(self, grants: dict[Role, Iterable[str]] | None = None) -> None:
        self._members: dict[Role, set[str]] = {role: set() for role in Role}
        for role, identities in (grants or {}).items():
            self._members[Role(role)].update(identities)

    def has_role(self, identity: str, role: Role) -> bool:
        return identity in self._members[Role(role)]

    def members(self, role: Role) -> frozenset[str]:
        return frozenset(self._members[Role(role)])

    def grant_role(self, caller: str, identity: str, role: Role) -> None:
        if not self.has_role(caller, Role.ADMIN):
            raise Unauthorized(caller, Role.ADMIN.value)
        self._members[Role(role)].add(identity)
        logger.info("Granted role %s to %s", Role(role).value, identity)

    def revoke_role(self, caller: str, identity: str, role: Role) -> None:
        if not self.has_role(caller, Role.ADMIN):
            raise Unauthorized(caller, Role.ADMIN.value)
        self._members[Role(role)].discard(identity)
        logger.info("Revoked role %s from %s", Role(role).value, identity)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ReentrancyGuard:
    """Tracks which operation scopes are in flight and which task holds them.

    Operations must be serialized by the caller. A nested entry from the
    holding task (a collaborator calling back in) raises ``ReentrantCall``;
    an entry from any other task while the scope is held raises
    ``ConcurrentCall``.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task | None] = {}

    def is_held(self, scope: str) -> bool:
        return scope in self._in_flight

    @contextmanager
    def hold(self, scope: str) -> Iterator[None]:
        task = _current_task()
        if scope in self._in_flight:
            if self._in_flight[scope] is task:
                raise ReentrantCall(scope)
            logger.warning("Rejected overlapping call into %s", scope)
            raise ConcurrentCall(scope)
        self._in_flight[scope] = task
        try:
            yield
        finally:
            self._in_flight.pop(scope, None)



@dataclass
class EngineContext:
    """State shared by every component of one engine instance.

    Carries the authorization provider, the lifecycle state, the clock, the
    audit log and the reentrancy guard. Nothing here is module-global, so any
    number of isolated engines can coexist.
    """

    auth: AuthorizationProvider
    clock: Callable[[], int] = system_clock
    lifecycle: LifecycleState = LifecycleState.ACTIVE
    events: EventLog = field(init=False)
    guard: ReentrancyGuard = field(default_factory=ReentrancyGuard)

    def __post_init__(self) -> None:
        self.events = EventLog(self.clock)

    def now(self) -> int:
        return int(self.clock())

    @property
    def paused(self) -> bool:
        return self.lifecycle is LifecycleState.PAUSED

    def require_role(self, caller: str, role: Role) -> None:
        if not self.auth.has_role(caller, role):
            logger.warning("Rejected %s: missing role %s", caller, role.value)
            raise Unauthorized(caller, role.value)

    def require_not_paused(self) -> None:
        if self.paused:
            raise Paused()

    def pause(self, caller: str) -> None:
        self.require_role(caller, Role.ADMIN)
        if self.paused:
            raise AlreadyPaused()
        self.lifecycle = LifecycleState.PAUSED
        self.events.emit("Paused", account=caller)

    def unpause(self, caller: str) -> None:
        self.require_role(caller, Role.ADMIN)
        if not self.paused:
            raise NotPaused()
        self.lifecycle = LifecycleState.ACTIVE
        self.events.emit("Unpaused", account=caller)
