"""
Trading venues.

Venue adapters live in submodules (``copytrade.venues.hyperliquid``) and are
imported explicitly by callers that need them.
"""

from enum import Enum


class Venue(str, Enum):
    """
    Trading venues a config may name.

    Only HYPERLIQUID has a bundled PositionSource. MOONLANDER is reserved
    for caller-supplied sources; the CLI refuses it.
    """
    HYPERLIQUID = "hyperliquid"
    MOONLANDER = "moonlander"


# Venues served by a PositionSource shipped in this package
BUNDLED_VENUES = frozenset({Venue.HYPERLIQUID})


__all__ = ["BUNDLED_VENUES", "Venue"]
