"""
Symbol normalization.

Venues spell the same instrument differently (Hyperliquid reports ``BTC``,
Moonlander ``BTC/USD``, ccxt-style feeds ``BTC/USDC:USDC``, some feeds
``BTCUSDT``). Matching across venues uses the bare base asset.
"""

import re
from typing import NewType, Tuple

CanonicalSymbol = NewType("CanonicalSymbol", str)

# Everything from the first separator on is quote/settlement/contract info.
SEPARATORS = re.compile(r"[-/:]")

# Quote assets glued onto the base ("BTCUSDT"). Longer first so "USDT"
# wins over "USD".
QUOTE_SUFFIXES: Tuple[str, ...] = ("USDT", "USDC", "USD")


def normalize(symbol: str) -> CanonicalSymbol:
    """
    Reduce a venue symbol to its canonical base asset.

    >>> normalize("BTC/USD")
    'BTC'
    >>> normalize("eth/usdc:usdc")
    'ETH'
    >>> normalize("BTCUSD")
    'BTC'

    A glued quote suffix is only stripped when something remains, so
    ``USDC`` itself stays ``USDC``.
    """
    text = (symbol or "").strip().upper()
    text = SEPARATORS.split(text, maxsplit=1)[0].strip()
    for suffix in QUOTE_SUFFIXES:
        if text.endswith(suffix) and len(text) > len(suffix):
            text = text[: -len(suffix)]
            break
    return CanonicalSymbol(text)
