"""Credential encryption using Fernet symmetric encryption.

Channel API keys are stored encrypted with a single application key supplied
through configuration (``PROMA_CREDENTIAL_KEY``).
"""

from cryptography.fernet import Fernet


class CredentialEncryption:
    """Fernet encryption for channel API keys.

    Example:
        >>> encryptor = CredentialEncryption(generate_encryption_key())
        >>> token = encryptor.encrypt("sk-secret")
        >>> encryptor.decrypt(token)
        'sk-secret'
    """

    def __init__(self, key: bytes) -> None:
        """Initialize encryption with a Fernet key.

        Args:
            key: Fernet encryption key (32 url-safe base64-encoded bytes)
        """
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> bytes:
        """Encrypt an API key to bytes."""
        return self._fernet.encrypt(plaintext.encode())

    def decrypt(self, ciphertext: bytes) -> str:
        """Decrypt API key bytes to a string.

        Raises:
            cryptography.fernet.InvalidToken: If the ciphertext was not produced
                with this key or has been tampered with
        """
        return self._fernet.decrypt(ciphertext).decode()


def generate_encryption_key() -> bytes:
    """Generate a new Fernet encryption key.

    Run once, store in the PROMA_CREDENTIAL_KEY environment variable.
    """
    return Fernet.generate_key()
