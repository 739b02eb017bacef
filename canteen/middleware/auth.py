"""
Canteen Service — JWT Authentication Middleware

Every non-public request must carry ``Authorization: Bearer <access token>``.
Decoded claims land on ``request.state.user``. Sign-out revocation is checked
later by the principal dependency, which has the document store.
"""
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from canteen.core.security import ACCESS_TOKEN, decode_token

# Reachable without signing in
PUBLIC_PATHS = frozenset({"/", "/health", "/docs", "/openapi.json"})
PUBLIC_PREFIXES = ("/metrics", "/auth/login", "/auth/register", "/auth/verify-email")


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": detail}, headers={"WWW-Authenticate": "Bearer"})


class JWTAuthMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        # CORS preflight carries no credentials
        if request.method == "OPTIONS" or is_public(request.url.path):
            return await call_next(request)

        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme != "Bearer" or not token:
            return _unauthorized("Sign in required: send 'Authorization: Bearer <token>'.")

        try:
            claims = decode_token(token)
        except JWTError as exc:
            return _unauthorized(f"Invalid or expired token: {exc}")

        if claims.get("type") != ACCESS_TOKEN:
            return _unauthorized("This token cannot be used to call the API; sign in for an access token.")

        request.state.user = claims
        return await call_next(request)
