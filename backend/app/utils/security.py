"""비밀번호 해시 헬퍼입니다. passlib CryptContext 를 사용합니다."""

from passlib.context import CryptContext

# 신규 해시는 pbkdf2_sha256, 기존 bcrypt 해시도 검증 가능
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    if plain is None:
        raise ValueError("Password must not be None")
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if plain is None or hashed is None:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False
