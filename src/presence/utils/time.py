from __future__ import annotations

import time

# --- wall-clock helpers (heartbeats are stamped in epoch milliseconds) ---

def utc_now_ms() -> int:
    """Unix epoch milliseconds (int)."""
    return time.time_ns() // 1_000_000

def ms_to_s(ms: int | float) -> float:
    return float(ms) / 1000.0

def age_ms(ts_ms: int, now_ms: int) -> int:
    """Milliseconds elapsed since ts_ms. Negative if ts_ms is ahead of now_ms."""
    return int(now_ms) - int(ts_ms)
