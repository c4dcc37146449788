from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.argon2 import Argon2Hasher

from ..logger import logger

password_hash = PasswordHash((Argon2Hasher(),))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        logger.warning("No admin password hash configured; rejecting login")
        return False
    try:
        return password_hash.verify(plain_password, hashed_password)
    except UnknownHashError:
        logger.error("Configured admin password hash is not a recognized argon2 hash")
        return False


def get_password_hash(password: str) -> str:
    return password_hash.hash(password)
