"""
Canteen Service — Admin routes (vendor provisioning)
"""
from fastapi import APIRouter, Depends, status

from canteen.api.dependencies import require_role, translate_errors
from canteen.db.document_store import USERS, DocumentStore, get_store
from canteen.db.order_ops import provision_vendor
from canteen.domain.documents import Role, UserProfile
from canteen.schemas.canteen import VendorCreateRequest

router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = require_role(Role.ADMIN)


@router.post("/vendors", response_model=UserProfile, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    payload: VendorCreateRequest,
    _: UserProfile = Depends(admin_only),
    store: DocumentStore = Depends(get_store),
):
    """Create a vendor profile. It binds to an account when that email first signs in."""
    with translate_errors("create vendor"):
        return await provision_vendor(store, {
            "name": payload.name,
            "email": payload.email.lower(),
            "vendorId": payload.vendor_id,
            "location": payload.location,
            "contactName": payload.contact_name,
        })


@router.get("/vendors", response_model=list[UserProfile])
async def list_vendors(
    _: UserProfile = Depends(admin_only),
    store: DocumentStore = Depends(get_store),
):
    with translate_errors("load vendors"):
        docs = await store.list(USERS, {"role": Role.VENDOR.value})
    return [UserProfile.model_validate(d) for d in docs]
