""" Utility for content hashing operations. """

import hashlib


def calculate_sha256_bytes(data: bytes) -> str:
    # Hex SHA-256 of an in-memory buffer; used for de-duplication and integrity checks.
    return hashlib.sha256(data).hexdigest()
