from __future__ import annotations

import logging
import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from lifx_gateway.errors import CredentialDecryptError, CredentialFormatError


logger = logging.getLogger("lifx_gateway")

IV_BYTES = 16


class CredentialVault:
    """
    AES-256-CTR wrapper for vendor API tokens.

    Stored blobs are framed as "<ivHex>:<ciphertextHex>". The key is fixed for
    the lifetime of the vault; blobs written under another key fail to decrypt.
    """

    def __init__(self, *, key: bytes) -> None:
        if len(key) != 32:
            raise ValueError("credential key must be 32 bytes")
        self._key = key

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CTR(iv))

    def encrypt(self, plaintext: str) -> str:
        iv = secrets.token_bytes(IV_BYTES)
        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, blob: str | None) -> str:
        if not blob:
            raise CredentialDecryptError("No credential provided for decryption.")
        parts = blob.split(":")
        if len(parts) < 2:
            raise CredentialFormatError("Invalid credential format.")
        try:
            iv = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(":".join(parts[1:]))
            decryptor = self._cipher(iv).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            return plaintext.decode("utf-8")
        except ValueError as exc:
            logger.warning("credential decryption failed: %s", type(exc).__name__)
            raise CredentialDecryptError("Failed to decrypt credential.") from None
