"""Authorization protocol — caller capability checks."""
from typing import Protocol

from ..models import Role


class AuthorizationProvider(Protocol):
    """Abstract interface answering whether an identity holds a role."""

    def has_role(self, identity: str, role: Role) -> bool: ...
