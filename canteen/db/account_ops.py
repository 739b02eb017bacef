"""
Canteen Service — Identity accounts (sign-up, sign-in, verification, sign-out)

Accounts live in the ``accounts`` collection, separate from the ``users``
profiles the rest of the app reads: an account proves who you are, a profile
says what you may do.
"""
import logging
from datetime import datetime, timezone

from jose import JWTError

from canteen.core.security import (
    EMAIL_VERIFY_TOKEN,
    create_email_verification_token,
    decode_token,
    hash_password,
    verify_password,
)
from canteen.db.document_store import ACCOUNTS, REVOKED_TOKENS, DocumentStore
from canteen.domain.profiles import Principal

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Sign-up / verification refused (duplicate email, bad token)."""


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def principal_of(account: dict) -> Principal:
    return Principal(id=account["id"], email=account.get("email"), email_verified=bool(account.get("emailVerified")))


async def register_account(store: DocumentStore, email: str, password: str) -> tuple[dict, str]:
    """Create an unverified account. Returns the account and its verification token."""
    email = _normalize_email(email)
    if await store.list(ACCOUNTS, {"email": email}):
        raise AccountError("Email already registered.")

    account_id = await store.create(ACCOUNTS, {
        "email": email,
        "hashedPassword": hash_password(password),
        "emailVerified": False,
    })
    logger.info("Account %s registered for %s", account_id, email)
    return await store.get(ACCOUNTS, account_id), create_email_verification_token(account_id, email)


async def authenticate(store: DocumentStore, email: str, password: str) -> dict | None:
    matches = await store.list(ACCOUNTS, {"email": _normalize_email(email)})
    if not matches or not verify_password(password, matches[0].get("hashedPassword", "")):
        return None
    return matches[0]


async def verify_email(store: DocumentStore, token: str) -> dict:
    try:
        claims = decode_token(token)
    except JWTError as exc:
        raise AccountError("Invalid or expired verification token.") from exc
    if claims.get("type") != EMAIL_VERIFY_TOKEN:
        raise AccountError("Not an email verification token.")

    account = await store.get(ACCOUNTS, claims["sub"])
    if account is None or account.get("email") != claims.get("email"):
        raise AccountError("Verification token does not match any account.")

    if not account.get("emailVerified"):
        await store.update(ACCOUNTS, account["id"], {"emailVerified": True})
        logger.info("Email verified for account %s", account["id"])
    return await store.get(ACCOUNTS, account["id"])


# ── Sign-out ──────────────────────────────────────────────────────────────────

def _expired(entry: dict, now: datetime) -> bool:
    raw = entry.get("expiresAt")
    if not raw:
        return False  # no exp claim: the token never lapses on its own
    try:
        return datetime.fromisoformat(raw) <= now
    except (TypeError, ValueError):
        return False


async def purge_expired_revocations(store: DocumentStore, now: datetime | None = None) -> int:
    """Drop revocations whose token has expired anyway; returns how many went."""
    now = now or datetime.now(timezone.utc)
    stale = [e for e in await store.list(REVOKED_TOKENS) if _expired(e, now)]
    for entry in stale:
        await store.delete(REVOKED_TOKENS, entry["id"])
    if stale:
        logger.info("Purged %d expired token revocations", len(stale))
    return len(stale)


async def revoke_token(store: DocumentStore, claims: dict, now: datetime | None = None) -> None:
    expires = claims.get("exp")
    await store.create(REVOKED_TOKENS, {
        "jti": claims.get("jti"),
        "sub": claims.get("sub"),
        "expiresAt": datetime.fromtimestamp(expires, tz=timezone.utc).isoformat() if expires else None,
    })
    logger.info("Token %s revoked for %s", claims.get("jti"), claims.get("sub"))
    await purge_expired_revocations(store, now)


async def is_revoked(store: DocumentStore, jti: str | None, now: datetime | None = None) -> bool:
    if not jti:
        return False
    now = now or datetime.now(timezone.utc)
    return any(not _expired(e, now) for e in await store.list(REVOKED_TOKENS, {"jti": jti}))
