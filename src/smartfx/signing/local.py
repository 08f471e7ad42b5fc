"""Local signing backend.

Holds the authority key in memory. Suitable for development, tests and a
single-operator deployment; use an approval-gated backend when a human must
confirm every rate.
"""

import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from smartfx.signing.base import (
    KeyNotFoundError,
    SignatureResult,
    SignerBackend,
    SignerType,
    SigningRequest,
)

logger = logging.getLogger(__name__)


class LocalSigner(SignerBackend):
    """Local signing backend using in-memory private keys.

    Keys are registered by key id; the default key id is "authority".
    """

    def __init__(self, private_key: Optional[str] = None, key_id: str = "authority"):
        super().__init__(SignerType.LOCAL)
        self._keys: dict[str, bytes] = {}
        if private_key:
            self.add_key(key_id, private_key)

    def _get_key(self, key_id: str) -> bytes:
        try:
            return self._keys[key_id.lower()]
        except KeyError:
            raise KeyNotFoundError(f"No signing key found for {key_id}")

    async def sign(self, request: SigningRequest) -> SignatureResult:
        """Sign the hash with the EIP-191 personal-message prefix."""
        try:
            private_key = self._get_key(request.key_id)
        except KeyNotFoundError as e:
            return SignatureResult(success=False, error=str(e))

        # "\x19Ethereum Signed Message:\n32" + hash
        message = encode_defunct(primitive=request.message_hash)
        signed = Account.sign_message(message, private_key=private_key)
        address = Account.from_key(private_key).address

        logger.debug(f"Signed commitment 0x{request.message_hash.hex()} with {address}")
        return SignatureResult(
            success=True,
            signature=bytes(signed.signature),
            signer_address=address,
        )

    async def get_address(self, key_id: str = "authority") -> Optional[str]:
        key = self._keys.get(key_id.lower())
        if key is None:
            return None
        return Account.from_key(key).address

    async def health_check(self) -> bool:
        """Check if any keys are loaded."""
        return len(self._keys) > 0

    def add_key(self, key_id: str, private_key_hex: str):
        """Add a private key.

        Args:
            key_id: Key identifier
            private_key_hex: Private key as hex string
        """
        self._keys[key_id.lower()] = bytes.fromhex(private_key_hex.removeprefix("0x"))

    def remove_key(self, key_id: str):
        """Remove a private key."""
        self._keys.pop(key_id.lower(), None)
