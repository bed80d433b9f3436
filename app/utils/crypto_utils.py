import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from config import settings

IV_LENGTH = 16


def _document_key() -> bytes:
    # keys shorter than 32 bytes are padded with "0", longer ones truncated
    return settings.DOC_ENCRYPTION_KEY.ljust(32, "0")[:32].encode("utf-8")


def encrypt_document(data: bytes) -> bytes:
    """Encrypt a proof document; the random IV is prepended to the ciphertext."""
    iv = os.urandom(IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_document_key()), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def decrypt_document(blob: bytes) -> bytes:
    iv, encrypted = blob[:IV_LENGTH], blob[IV_LENGTH:]
    decryptor = Cipher(algorithms.AES(_document_key()), modes.CBC(iv)).decryptor()
    padded = decryptor.update(encrypted) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()
