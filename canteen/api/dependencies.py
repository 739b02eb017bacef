"""
Canteen Service — Shared route dependencies and error translation
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from canteen.core.config import get_settings
from canteen.db.account_ops import is_revoked, principal_of
from canteen.db.document_store import ACCOUNTS, DocumentNotFound, DocumentStore, StoreError, get_store
from canteen.db.order_ops import OperationDenied, ensure_profile
from canteen.domain.documents import Role, UserProfile
from canteen.domain.meal_windows import WindowTable
from canteen.domain.orders import DenialKind
from canteen.domain.profiles import Principal, has_role

settings = get_settings()
logger = logging.getLogger(__name__)

# Refusals that are about who is asking rather than the state of the order.
FORBIDDEN_KINDS = frozenset({DenialKind.NOT_PERMITTED.value, DenialKind.NOT_OWNER.value})


@contextmanager
def translate_errors(action: str):
    """Map core exceptions to HTTP responses for the body of one route."""
    try:
        yield
    except OperationDenied as exc:
        code = status.HTTP_403_FORBIDDEN if exc.kind in FORBIDDEN_KINDS else status.HTTP_409_CONFLICT
        raise HTTPException(status_code=code, detail={"kind": exc.kind, "message": exc.message})
    except DocumentNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{exc.collection} '{exc.doc_id}' not found.")
    except StoreError:
        logger.exception("Failed to %s", action)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to {action}. Check server logs.",
        )


# ── Clock / calendar ──────────────────────────────────────────────────────────

def local_now() -> datetime:
    return datetime.now(settings.local_tz)


@lru_cache()
def get_window_table() -> WindowTable:
    return WindowTable(settings.MEAL_WINDOWS)


# ── Identity ──────────────────────────────────────────────────────────────────

async def get_principal(request: Request, store: DocumentStore = Depends(get_store)) -> Principal:
    claims = getattr(request.state, "user", None)
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in.")

    with translate_errors("check session"):
        if await is_revoked(store, claims.get("jti")):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session has been signed out.")
        # Verification can happen after the token was issued; read it live.
        account = await store.get(ACCOUNTS, claims["sub"])

    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account no longer exists.")
    return principal_of(account)


async def get_profile(
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
) -> UserProfile:
    with translate_errors("load profile"):
        return await ensure_profile(store, principal)


def require_role(*roles: Role):
    """Dependency factory: the caller's profile, or 403 if its role is not one of ``roles``."""

    async def _guard(profile: UserProfile = Depends(get_profile)) -> UserProfile:
        if not has_role(profile, *roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "kind": DenialKind.NOT_PERMITTED.value,
                    "message": f"This action needs role {' or '.join(r.value for r in roles)}.",
                },
            )
        return profile

    return _guard
