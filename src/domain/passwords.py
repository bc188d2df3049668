import bcrypt

BCRYPT_ROUNDS = 12

# Compared against when the email is unknown so both paths cost one bcrypt check.
_DUMMY_HASH = bcrypt.hashpw(b"dummy_password", bcrypt.gensalt(BCRYPT_ROUNDS))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def burn_password_check(password: str) -> None:
    bcrypt.checkpw(password.encode(), _DUMMY_HASH)


def validate_password(password: str) -> bool:
    return len(password) >= 8
