from __future__ import annotations

from enum import Enum
from typing import Mapping, Protocol


class Capability(str, Enum):
    SERVERS = "r_servers"
    NODES = "r_nodes"
    ALLOCATIONS = "r_allocations"
    USERS = "r_users"
    LOCATIONS = "r_locations"
    NESTS = "r_nests"
    EGGS = "r_eggs"
    DATABASE_HOSTS = "r_database_hosts"
    SERVER_DATABASES = "r_server_databases"


NONE = 0
READ = 1
WRITE = 2
READ_WRITE = READ | WRITE


def check(permission: int, action: int) -> bool:
    return (permission & action) > 0


class Authorizer(Protocol):
    def authorize(self, capability: Capability) -> bool:
        ...


class AllowAll:
    def authorize(self, capability: Capability) -> bool:
        return True


class DenyAll:
    def authorize(self, capability: Capability) -> bool:
        return False


class KeyAuthorizer:
    """Checks capabilities against the permission map of a single API key."""

    def __init__(self, permissions: Mapping[Capability, int], action: int = READ) -> None:
        self.permissions = {Capability(key): int(value) for key, value in permissions.items()}
        self.action = action

    def authorize(self, capability: Capability) -> bool:
        return check(self.permissions.get(capability, NONE), self.action)

    def for_action(self, action: int) -> "KeyAuthorizer":
        return KeyAuthorizer(self.permissions, action=action)
