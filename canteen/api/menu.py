"""
Canteen Service — Menu management (vendor)
"""
from fastapi import APIRouter, Depends, status

from canteen.api.dependencies import get_profile, require_role, translate_errors
from canteen.db.document_store import MENU, DocumentStore, get_store
from canteen.db.order_ops import (
    create_menu_item,
    delete_menu_item,
    list_vendor_menu,
    toggle_availability,
    update_menu_item,
)
from canteen.domain.documents import MenuItem, Role, UserProfile, parse_menu
from canteen.schemas.canteen import MenuItemCreate, MenuItemUpdate

router = APIRouter(prefix="/menu", tags=["menu"])

vendor_only = require_role(Role.VENDOR)


@router.get("", response_model=list[MenuItem])
async def list_menu(
    profile: UserProfile = Depends(get_profile),
    store: DocumentStore = Depends(get_store),
):
    """Vendors see their own and legacy items; everyone else sees the whole menu."""
    with translate_errors("load menu"):
        if profile.role == Role.VENDOR.value:
            return await list_vendor_menu(store, profile.vendor_id)
        return parse_menu(await store.list(MENU))


@router.post("", response_model=MenuItem, status_code=status.HTTP_201_CREATED)
async def add_item(
    payload: MenuItemCreate,
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
):
    with translate_errors("add item"):
        return await create_menu_item(store, payload.model_dump(), profile.vendor_id)


@router.patch("/{item_id}", response_model=MenuItem)
async def edit_item(
    item_id: str,
    payload: MenuItemUpdate,
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
):
    with translate_errors("update item"):
        return await update_menu_item(store, item_id, payload.model_dump(exclude_unset=True), profile.vendor_id)


@router.post("/{item_id}/toggle", response_model=MenuItem)
async def toggle_item(
    item_id: str,
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
):
    with translate_errors("update availability"):
        return await toggle_availability(store, item_id, profile.vendor_id)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item(
    item_id: str,
    profile: UserProfile = Depends(vendor_only),
    store: DocumentStore = Depends(get_store),
):
    with translate_errors("delete item"):
        await delete_menu_item(store, item_id, profile.vendor_id)
