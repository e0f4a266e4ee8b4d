"""
KeypairSigner Unit Tests
========================
"""

import base58
import pytest
from unittest.mock import AsyncMock

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0

from arbitrage.core.errors import ConfigError
from arbitrage.infrastructure.signer import KeypairSigner


class TestKeypairSigner:

    def test_from_base58(self, mock_rpc):
        keypair = Keypair()
        secret = base58.b58encode(bytes(keypair)).decode()

        signer = KeypairSigner.from_base58(secret, mock_rpc)

        assert signer.pubkey() == keypair.pubkey()
        assert signer.export_base58() == secret

    def test_invalid_key_is_config_error(self, mock_rpc):
        with pytest.raises(ConfigError):
            KeypairSigner.from_base58("not-a-key!!", mock_rpc)

    @pytest.mark.asyncio
    async def test_balance_in_sol(self, mock_rpc):
        signer = KeypairSigner(Keypair(), mock_rpc)

        assert await signer.get_balance() == 10.0

    @pytest.mark.asyncio
    async def test_balance_failure_reads_zero(self, mock_rpc):
        mock_rpc.get_balance = AsyncMock(side_effect=RuntimeError("rpc down"))
        signer = KeypairSigner(Keypair(), mock_rpc)

        assert await signer.get_balance() == 0.0

    def test_sign_transaction(self, mock_rpc):
        signer = KeypairSigner(Keypair(), mock_rpc)
        message = MessageV0.try_compile(signer.pubkey(), [], [], Hash.default())

        tx = signer.sign_transaction(message)

        assert len(tx.signatures) == 1
        assert tx.message.account_keys[0] == signer.pubkey()
