"""Password hashing for the HELLO handshake challenge."""

from cryptography.hazmat.primitives import hashes


def sha256(data: bytes) -> bytes:
    """Return the raw SHA-256 digest of data."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def hash_password(password: str, salt: str, iterations: int) -> str:
    """Compute the ``pwdhash`` answer to a server challenge.

    Hashes ``password + salt`` ``iterations`` times, each round over the previous raw digest,
    and hex-encodes the result. Zero iterations hex-encodes the salted password unhashed.
    """
    data = (password + salt).encode()
    for _ in range(iterations):
        data = sha256(data)
    return data.hex()
