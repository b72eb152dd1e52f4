from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict

# ---- store-level primitives ----

@dataclass(slots=True)
class PresenceEntry:
    client_id: str       # best-effort network identity, not authenticated
    last_seen_ms: int    # epoch milliseconds

    def to_dict(self) -> ActiveUser:
        return {"ip": self.client_id, "lastSeen": int(self.last_seen_ms)}

# ---- wire payloads ----

class ActiveUser(TypedDict):
    ip: str
    lastSeen: int

class ActiveUsersPayload(TypedDict):
    count: int
    users: list[ActiveUser]

class HeartbeatAck(TypedDict):
    success: bool

def active_users_payload(entries: list[PresenceEntry]) -> ActiveUsersPayload:
    """Build the GET /active-users body; count is always len(users)."""
    users = [e.to_dict() for e in entries]
    return {"count": len(users), "users": users}
