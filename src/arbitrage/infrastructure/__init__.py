"""Chain-facing infrastructure: wallet signer and Jito relay."""

from .jito_adapter import JitoRelay
from .signer import KeypairSigner, Signer

__all__ = ["JitoRelay", "KeypairSigner", "Signer"]
