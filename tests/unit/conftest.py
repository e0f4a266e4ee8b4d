"""
Unit Test Configuration
=======================
Unit tests run offline: HTTP is blocked and RPC is a MagicMock.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from solders.hash import Hash
from solders.signature import Signature


# ============================================================================
# AUTOUSE: ENFORCE I/O ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolate_unit_tests(monkeypatch):
    """Any real httpx request fails the test."""
    def block_network(*args, **kwargs):
        raise RuntimeError("Unit test attempted a real HTTP request; inject a mock client")

    monkeypatch.setattr("httpx.AsyncClient.get", block_network)
    monkeypatch.setattr("httpx.AsyncClient.post", block_network)


# ============================================================================
# RPC FIXTURES
# ============================================================================


@pytest.fixture
def mock_rpc():
    """AsyncClient stand-in whose happy path confirms every transaction."""
    client = MagicMock()
    client.get_latest_blockhash = AsyncMock(
        return_value=MagicMock(value=MagicMock(blockhash=Hash.default()))
    )
    client.send_raw_transaction = AsyncMock(return_value=MagicMock(value=Signature.default()))
    client.confirm_transaction = AsyncMock(return_value=MagicMock(value=[MagicMock(err=None)]))
    client.simulate_transaction = AsyncMock(
        return_value=MagicMock(value=MagicMock(err=None, logs=["Program log: ok"], units_consumed=1234))
    )
    client.get_balance = AsyncMock(return_value=MagicMock(value=10_000_000_000))
    return client
