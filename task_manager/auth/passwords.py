# task_manager/auth/passwords.py
# Salted one-way hashes via werkzeug; check_password_hash compares in constant time.
from werkzeug.security import generate_password_hash, check_password_hash

# verified when no account matches so a miss costs the same as a wrong password
_DUMMY_HASH = generate_password_hash("not-a-real-password")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash or password is None:
        return False
    return check_password_hash(password_hash, password)


def burn_password_check(password: str) -> None:
    check_password_hash(_DUMMY_HASH, password or "")
