from __future__ import annotations
from datetime import datetime
from zoneinfo import ZoneInfo

from presence.utils.time import ms_to_s
from presence.utils.types import ActiveUsersPayload

def _fmt_ts(ts_ms: int, tz_name: str) -> str:
    tz = ZoneInfo(tz_name)
    return datetime.fromtimestamp(ms_to_s(ts_ms), tz).strftime("%-I:%M:%S %Z")  # e.g., 11:28:30 CDT

def format_active_users(payload: ActiveUsersPayload, tz_name: str = "UTC") -> str:
    """
    ACTIVE USERS: 2
      5.6.7.8          last seen 9:01:00 UTC
      1.2.3.4          last seen 9:00:00 UTC
    """
    users = sorted(payload.get("users", []), key=lambda u: int(u.get("lastSeen", 0)), reverse=True)
    count = int(payload.get("count", len(users)))

    lines = [f"ACTIVE USERS: {count}"]
    for u in users:
        ip = str(u.get("ip", "?"))
        seen = _fmt_ts(int(u.get("lastSeen", 0)), tz_name)
        lines.append(f"  {ip:<16} last seen {seen}")
    return "\n".join(lines)
