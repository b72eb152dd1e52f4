from __future__ import annotations
from typing import Mapping, Optional

UNKNOWN_CLIENT = "unknown"

def _first(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    return v or None

def client_id_from_headers(headers: Mapping[str, str]) -> str:
    """
    Best-effort client identity from forwarded-address headers.

    Checked in order:
      - "x-forwarded-for"  first comma-separated hop ("1.2.3.4, 10.0.0.1" -> "1.2.3.4")
      - "x-real-ip"
      - "remote-addr"
      - otherwise UNKNOWN_CLIENT (all unidentified clients share one entry)

    These headers are set by the client or any proxy in between and are
    trivially spoofable. Use the result for approximate presence telemetry
    only, never for access control. The transport peer address is not read.

    Lookups are case-insensitive for aiohttp's CIMultiDictProxy; plain dicts
    should carry lowercase keys.
    """
    fwd = headers.get("x-forwarded-for")
    if fwd:
        hop = _first(fwd.split(",")[0])
        if hop:
            return hop

    for name in ("x-real-ip", "remote-addr"):
        v = _first(headers.get(name))
        if v:
            return v

    return UNKNOWN_CLIENT
