import base64
import hashlib
import hmac
import os


PASSWORD_MIN_LENGTH = 6
_ALGORITHM = "pbkdf2_sha256"
_DEFAULT_ITERATIONS = 200_000


def hash_password(password: str, iterations: int = _DEFAULT_ITERATIONS) -> str:
    salt = base64.urlsafe_b64encode(os.urandom(16)).decode("utf-8")
    digest = _digest(password, salt, iterations)
    return f"{_ALGORITHM}${iterations}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations_raw, salt, encoded = password_hash.split("$", 3)
        iterations = int(iterations_raw)
    except ValueError:
        return False
    if algorithm != _ALGORITHM:
        return False
    return hmac.compare_digest(_digest(password, salt, iterations), encoded)


def is_acceptable_password(password: str) -> bool:
    return len(password) >= PASSWORD_MIN_LENGTH


def _digest(password: str, salt: str, iterations: int) -> str:
    raw = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return base64.urlsafe_b64encode(raw).decode("utf-8")
