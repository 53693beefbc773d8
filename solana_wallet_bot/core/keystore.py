"""
Private key encryption at rest.

Stored format is `<iv hex>:<ciphertext hex>`, AES-256-CBC with PKCS7
padding. The key comes from ENCRYPTION_KEY (64 hex chars); if it changes,
existing wallets can no longer be decrypted.
"""
from __future__ import annotations

import json
import logging
import os

import base58
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from solders.keypair import Keypair

from solana_wallet_bot.exceptions import ConfigurationException, DecryptionFailed

KEY_LENGTH = 32
IV_LENGTH = 16

logger = logging.getLogger(__name__)


class KeyStore:
    def __init__(self, encryption_key_hex: str) -> None:
        try:
            key = bytes.fromhex(encryption_key_hex[: KEY_LENGTH * 2])
        except ValueError as exc:
            raise ConfigurationException("ENCRYPTION_KEY must be hex") from exc
        if len(key) != KEY_LENGTH:
            raise ConfigurationException("ENCRYPTION_KEY must be 64 hex characters")
        self._key = key

    def encrypt(self, secret: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(secret.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{encrypted.hex()}"

    def decrypt(self, blob: str) -> str:
        parts = blob.split(":")
        if len(parts) != 2:
            raise DecryptionFailed("Invalid encrypted key format")
        try:
            iv = bytes.fromhex(parts[0])
            encrypted = bytes.fromhex(parts[1])
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(encrypted) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except ValueError as exc:
            # wrong key shows up as bad padding or garbage bytes
            logger.warning(f"Private key decryption failed: {exc}")
            raise DecryptionFailed("Failed to decrypt private key") from exc

    def load_keypair(self, blob: str) -> Keypair:
        """Decrypt a stored secret key and build the signer."""
        secret = self.decrypt(blob)
        try:
            return keypair_from_secret(secret)
        except (TypeError, ValueError) as exc:
            raise DecryptionFailed("Decrypted key is not a valid Solana secret key") from exc

    def encrypt_keypair(self, keypair: Keypair) -> str:
        """Encrypt a signer in the stored base58 form."""
        return self.encrypt(base58.b58encode(bytes(keypair)).decode("ascii"))


def keypair_from_secret(secret: str) -> Keypair:
    """
    Build a Keypair from a base58 string or a JSON byte array.

    Raises ValueError or TypeError when the secret is not a 64-byte key.
    """
    secret = secret.strip()
    if secret.startswith("["):
        key_bytes = bytes(json.loads(secret))
    else:
        key_bytes = base58.b58decode(secret)
    return Keypair.from_bytes(key_bytes)
