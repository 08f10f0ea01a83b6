"""
Password hashing & JWT helpers.

- Passwords are hashed with bcrypt directly (passlib is unmaintained
  and broken with bcrypt>=4.1).  Hashing is slow, so
  async callers push it onto the thread pool.
- Access and refresh tokens are signed with distinct secrets and
  carry a random ``jti`` so two tokens minted in the same second
  never collide.
- Verification failures surface as ``InvalidTokenError``; callers
  never see python-jose exception types.
- Refresh tokens and one-time challenges are stored as SHA-256 hashes.
"""

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from momentum.core.config import Settings
from momentum.core.database import get_db
from momentum.core.errors import InvalidTokenError, PasswordTooLongError
from momentum.services import user_service

ACCESS = "access"
REFRESH = "refresh"

# bcrypt ignores everything past this many bytes
BCRYPT_MAX_BYTES = 72


# ── Password hashing ────────────────────────────────────────────────


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    @staticmethod
    def _encode(plain: str) -> bytes:
        encoded = plain.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise PasswordTooLongError()
        return encoded

    def hash(self, plain: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(plain), salt).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        encoded = plain.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES or not hashed:
            return False
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))

    def verify_dummy(self, plain: str) -> bool:
        """Spend the same time as a real check when there is no user.

        Keeps "unknown email" and "wrong password" indistinguishable
        by response time. Always returns False.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(
                secrets.token_bytes(16), bcrypt.gensalt(rounds=self.rounds),
            )
        bcrypt.checkpw(plain.encode("utf-8")[:BCRYPT_MAX_BYTES], self._dummy_hash)
        return False


# ── Token hashing (refresh tokens, reset / verification challenges) ─


def hash_token(token: str) -> str:
    """SHA-256 hash, suitable for high-entropy tokens like JWTs."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_challenge_token() -> tuple[str, str]:
    """Return ``(raw, hashed)``: the raw token goes out by email, the hash is stored."""
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)


# ── JWT ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    token_type: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenSigner:
    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        issuer: str = "momentum-app",
    ):
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self.algorithm = algorithm
        self.issuer = issuer

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenSigner":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            access_ttl=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            algorithm=settings.JWT_ALGORITHM,
            issuer=settings.JWT_ISSUER,
        )

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH]

    def sign_access(self, user_id: uuid.UUID) -> IssuedToken:
        return self._sign(user_id, ACCESS)

    def sign_refresh(self, user_id: uuid.UUID) -> IssuedToken:
        return self._sign(user_id, REFRESH)

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(token, ACCESS)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(token, REFRESH)

    def _sign(self, user_id: uuid.UUID, token_type: str) -> IssuedToken:
        now = datetime.now(timezone.utc)
        expires_at = now + self._ttls[token_type]
        claims = {
            "sub": str(user_id),
            "user_id": str(user_id),
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iss": self.issuer,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._secrets[token_type], algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def _verify(self, token: str, token_type: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self.algorithm],
                issuer=self.issuer,
            )
        except JWTError:
            raise InvalidTokenError()

        if payload.get("type") != token_type:
            raise InvalidTokenError()
        try:
            return TokenClaims(
                user_id=uuid.UUID(payload["sub"]),
                token_type=token_type,
                jti=payload["jti"],
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError()


# ── Per-request access-token authentication ─────────────────────────

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID:
    """
    FastAPI dependency: verifies the bearer access token and checks the
    user still exists.  Access tokens are stateless: a revoked refresh
    session does not invalidate them before they expire.
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenError("Access token missing")

    signer: TokenSigner = request.app.state.token_signer
    claims = signer.verify_access(credentials.credentials)

    user = await user_service.get_by_id(claims.user_id, db)
    if user is None:
        raise InvalidTokenError()
    return user.id
