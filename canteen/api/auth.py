"""
Canteen Service — Auth API routes
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status

from canteen.api.dependencies import get_principal, get_profile, translate_errors
from canteen.core.config import get_settings
from canteen.core.security import create_access_token
from canteen.db.account_ops import AccountError, authenticate, register_account, revoke_token, verify_email
from canteen.db.document_store import DocumentStore, get_store
from canteen.domain.documents import UserProfile
from canteen.domain.profiles import Principal, resolve_user_id
from canteen.schemas.canteen import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    VerifyEmailRequest,
)

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, store: DocumentStore = Depends(get_store)):
    """Create an account. It stays unverified until its verification token is applied.

    The token is only echoed back in DEBUG (local demos); otherwise it must
    reach the user out of band, so registering never proves email ownership.
    """
    with translate_errors("register"):
        try:
            account, token = await register_account(store, payload.email, payload.password)
        except AccountError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return RegisterResponse(
        id=account["id"],
        email=account["email"],
        email_verified=bool(account.get("emailVerified")),
        verification_token=token if settings.DEBUG else None,
    )


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, store: DocumentStore = Depends(get_store)):
    """Validate credentials and issue an access token."""
    with translate_errors("sign in"):
        account = await authenticate(store, payload.email, payload.password)

    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": account["id"], "email": account["email"]})
    return TokenResponse(access_token=token, expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60)


@router.post("/verify-email")
async def confirm_email(payload: VerifyEmailRequest, store: DocumentStore = Depends(get_store)):
    with translate_errors("verify email"):
        try:
            account = await verify_email(store, payload.token)
        except AccountError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return {"id": account["id"], "email": account["email"], "email_verified": True}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request, store: DocumentStore = Depends(get_store)):
    """Revoke the presented token; it is refused from now until it expires."""
    with translate_errors("sign out"):
        await revoke_token(store, request.state.user)


@router.get("/me", response_model=MeResponse)
async def me(
    principal: Principal = Depends(get_principal),
    profile: UserProfile = Depends(get_profile),
):
    return MeResponse(
        id=principal.id,
        email=principal.email,
        email_verified=principal.email_verified,
        role=profile.role,
        user_id=resolve_user_id(profile, principal),
        employee_id=profile.employee_id,
        vendor_id=profile.vendor_id,
        name=profile.name,
    )
