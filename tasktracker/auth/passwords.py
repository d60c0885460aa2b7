import bcrypt
from fastapi.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode(
        "utf-8"
    )


def _verify(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # unparseable stored hash or oversized password
        return False


async def hash_password(password: str, rounds: int = 12) -> str:
    return await run_in_threadpool(_hash, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(_verify, password, password_hash)
