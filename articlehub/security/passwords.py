"""Salted PBKDF2 password hashing."""
import hashlib
import hmac
import secrets

SALT_BYTES = 64
PBKDF2_ITERATIONS = 10_000
PBKDF2_KEY_LENGTH = 64
PBKDF2_DIGEST = "sha512"


def _derive(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        bytes.fromhex(salt),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_LENGTH,
    ).hex()


def generate_salt_and_hash(password: str) -> tuple[str, str]:
    """Return a fresh ``(salt, hash)`` pair, both hex-encoded, for storage."""
    salt = secrets.token_hex(SALT_BYTES)
    return salt, _derive(password, salt)


def check_password(password: str, salt: str, hashed: str) -> bool:
    """Recompute the hash for *password* with *salt* and compare to *hashed*."""
    try:
        candidate = _derive(password, salt)
    except ValueError:
        # salt is not valid hex
        return False
    return hmac.compare_digest(candidate, hashed)
