"""
Manager credentials stored as a single ``username:bcrypt-hash`` line.

The file is read on every login attempt so it can be rotated without a restart.
"""
import hmac
import logging
from pathlib import Path

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
# bcrypt only uses the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class CredentialsError(Exception):
    """The credential file is missing or not in ``username:hash`` form."""


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def read_credentials(path):
    path = Path(path)
    try:
        line = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.error(f"Password file missing: {path}")
        raise CredentialsError("Server not configured - missing password file")
    except OSError as e:
        logger.error(f"Could not read password file {path}: {e}")
        raise CredentialsError("Server config error - unreadable password file") from e

    username, _, secret = line.partition(":")
    if not username or not secret.startswith(BCRYPT_PREFIXES):
        logger.error("Invalid password file format. Expected 'username:<bcrypt hash>'")
        raise CredentialsError("Server config error - invalid password file format")

    return username, secret


def check_credentials(path, username: str, password: str) -> bool:
    expected_username, secret = read_credentials(path)

    username_ok = hmac.compare_digest(username.encode("utf-8"), expected_username.encode("utf-8"))
    try:
        password_ok = bcrypt.checkpw(_password_bytes(password), secret.encode("ascii"))
    except ValueError as e:
        logger.error(f"Stored password hash is not a valid bcrypt hash: {e}")
        raise CredentialsError("Server config error - invalid password hash") from e

    return username_ok and password_ok
