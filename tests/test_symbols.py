"""Tests for venue symbol normalization."""

import pytest

from copytrade.copy_trading import normalize


@pytest.mark.parametrize("raw,expected", [
    ("BTC", "BTC"),
    ("btc", "BTC"),
    ("BTC/USD", "BTC"),
    ("ETH/USDC:USDC", "ETH"),
    ("SOL-PERP", "SOL"),
    ("DOGEUSDT", "DOGE"),
    ("  eth-usd ", "ETH"),
    ("kPEPE", "KPEPE"),
])
def test_normalize_strips_quote_suffixes(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("BTCUSD", "BTC"),
    ("ethusdc", "ETH"),
    ("BTC/EUR", "BTC"),
    ("SOL:USDC", "SOL"),
    ("ETH-PERP-2025", "ETH"),
    ("AVAX/BTC", "AVAX"),
])
def test_everything_after_separator_dropped(raw, expected):
    assert normalize(raw) == expected


def test_bare_quote_asset_is_kept():
    assert normalize("USDC") == "USDC"
    assert normalize("USD") == "USD"
    assert normalize("USDT/USD") == "USDT"


def test_normalize_is_idempotent():
    once = normalize("ARB/USDT:USDT")
    assert normalize(once) == once


def test_empty_symbol():
    assert normalize("") == ""
    assert normalize("/USD") == ""
