"""
Canteen Core — Profiles and identity linkage
"""
from dataclasses import dataclass

from canteen.domain.documents import Role, UserProfile


@dataclass(frozen=True)
class Principal:
    """The signed-in identity as reported by the identity provider."""
    id: str
    email: str | None = None
    email_verified: bool = False


def resolve_user_id(profile: UserProfile | None, principal: Principal | None) -> str | None:
    """Soft key stamped on orders: employeeId, then account email, then account id.

    Changing an employeeId after orders exist leaves the older orders under
    the previous key.
    """
    if profile is not None and profile.employee_id:
        return profile.employee_id
    if principal is not None:
        return principal.email or principal.id or None
    return None


def pick_profile(principal: Principal, profiles: list[UserProfile]) -> tuple[UserProfile | None, bool]:
    """Locate the profile for ``principal``.

    Returns ``(profile, needs_binding)``. A uid match wins; otherwise an
    unbound profile with the same email is returned with ``needs_binding``
    set. A profile already bound to a different uid is never handed out.
    """
    for p in profiles:
        if p.uid == principal.id:
            return p, False
    if principal.email:
        for p in profiles:
            if p.email == principal.email and not p.uid:
                return p, True
    return None, False


def bootstrap_profile_fields(principal: Principal) -> dict:
    return {
        "uid": principal.id,
        "email": principal.email,
        "role": Role.EMPLOYEE.value,
        "employeeId": None,
        "vendorId": None,
        "createdVia": "auto-bootstrap",
    }


def has_role(profile: UserProfile | None, *roles: Role) -> bool:
    return profile is not None and profile.role in {r.value for r in roles}
