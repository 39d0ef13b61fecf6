import base64
import binascii
import hmac
import logging
import os
from hashlib import sha256
from typing import Tuple

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import settings
from .exceptions import CredentialCryptoError

logger = logging.getLogger("recall-context.security")

ITERATION_COUNT = 65536
KEY_LENGTH = 32  # 256-bit AES key
IV_LENGTH = 16
TAG_LENGTH = 32  # HMAC-SHA256

def derive_key(identity: str, master_secret: str = None) -> bytes:
    """
    Derive the per-user AES-256 key with PBKDF2-HMAC-SHA256.

    The identity is the salt, so the same (master secret, identity) pair
    always yields the same key and nothing derived is ever stored.
    """
    secret = master_secret if master_secret is not None else settings.ENCRYPTION_SECRET
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=identity.encode("utf-8"),
        iterations=ITERATION_COUNT,
    )
    return kdf.derive(secret.encode("utf-8"))

def _mac_key(key: bytes) -> bytes:
    # Separate subkey so the AES key is never used as an HMAC key
    return hmac.new(key, b"recall-context/credential-mac", sha256).digest()

def _tag(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    return hmac.new(_mac_key(key), iv + ciphertext, sha256).digest()

def encrypt_secret(secret: str, identity: str) -> Tuple[str, str]:
    """
    Encrypt a secret (the Anthropic API key) for the given identity.

    Args:
        secret: Plaintext to protect
        identity: User identifier, used as the key-derivation salt

    Returns:
        Tuple (ciphertext, iv), both base64 encoded. The ciphertext carries an
        HMAC tag so that any tampering is detected on decryption.
    """
    try:
        key = derive_key(identity)
        # Fresh IV on every call, never derived from the secret
        iv = os.urandom(IV_LENGTH)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(secret.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        sealed = ciphertext + _tag(key, iv, ciphertext)

        logger.debug(f"Encrypted API key for user: {identity}")
        return base64.b64encode(sealed).decode("ascii"), base64.b64encode(iv).decode("ascii")
    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error encrypting API key for user {identity}: {type(e).__name__}")
        raise CredentialCryptoError("Failed to encrypt API key") from e

def decrypt_secret(ciphertext: str, iv: str, identity: str) -> str:
    """
    Decrypt a secret produced by encrypt_secret.

    Raises:
        CredentialCryptoError: corrupted or truncated input, wrong identity or
            wrong master secret
    """
    try:
        sealed = base64.b64decode(ciphertext, validate=True)
        iv_bytes = base64.b64decode(iv, validate=True)
        if len(iv_bytes) != IV_LENGTH:
            raise ValueError("bad IV length")
        if len(sealed) < TAG_LENGTH + IV_LENGTH:
            raise ValueError("ciphertext too short")

        body, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        key = derive_key(identity)
        if not hmac.compare_digest(tag, _tag(key, iv_bytes, body)):
            raise ValueError("authentication tag mismatch")

        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv_bytes)).decryptor()
        padded = decryptor.update(body) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()

        logger.debug(f"Decrypted API key for user: {identity}")
        return plaintext.decode("utf-8")
    except (ValueError, TypeError, binascii.Error) as e:
        # UnicodeDecodeError is a ValueError
        logger.error(f"Error decrypting API key for user {identity}: {type(e).__name__}")
        raise CredentialCryptoError("Failed to decrypt API key") from e
