"""Human-readable hashrate strings."""

from __future__ import annotations

# Largest unit first; a value exactly at a threshold uses that unit
_UNITS = (
    (1e9, "GH/s"),
    (1e6, "MH/s"),
    (1e3, "kH/s"),
)


def format_hashrate(rate: float) -> str:
    """
    Format a rate in hashes per second with a scaled unit.

    Examples:
        999 -> "999.00 H/s", 1000 -> "1.00 kH/s"
    """
    for threshold, unit in _UNITS:
        if rate >= threshold:
            return f"{rate / threshold:.2f} {unit}"
    return f"{rate:.2f} H/s"
