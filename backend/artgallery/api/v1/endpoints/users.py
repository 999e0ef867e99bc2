"""
User API Endpoints.

Address book for customers and user management for admins.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field

from artgallery.api.v1.deps import get_account_service
from artgallery.core.security import get_current_user, require_admin
from artgallery.models.user import User, UserRole
from artgallery.modules.accounts import (
    AccountService,
    serialize_address,
    serialize_user,
)

router = APIRouter()


# ==================== Schemas ====================


class AddressRequest(BaseModel):
    label: str = "Home"
    street_line1: str = Field(..., min_length=1, max_length=255)
    street_line2: str | None = None
    city: str = Field(..., min_length=1, max_length=100)
    state_code: str = Field(..., min_length=2, max_length=2)
    zip_code: str = Field(..., pattern=r"^\d{5}(-\d{4})?$")
    phone_number: str = Field(..., pattern=r"^\+?[\d\s\-()]{10,}$")
    is_residential: bool = True
    is_default: bool = False


class AddressUpdateRequest(BaseModel):
    label: str | None = None
    street_line1: str | None = None
    street_line2: str | None = None
    city: str | None = None
    state_code: str | None = Field(None, min_length=2, max_length=2)
    zip_code: str | None = Field(None, pattern=r"^\d{5}(-\d{4})?$")
    phone_number: str | None = Field(None, pattern=r"^\+?[\d\s\-()]{10,}$")
    is_residential: bool | None = None
    is_default: bool | None = None


class UserUpdateRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None


# ==================== Addresses ====================


@router.get("/addresses")
async def get_addresses(
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    addresses = await accounts.get_addresses(user.id)
    return {"success": True, "addresses": [serialize_address(a) for a in addresses]}


@router.post("/addresses", status_code=201)
async def add_address(
    request: AddressRequest,
    validate: bool = Query(False, description="Validate the address with FedEx"),
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    """Save an address; the first one becomes the default."""
    address, validation = await accounts.add_address(
        user.id, validate=validate, **request.model_dump()
    )
    return {
        "success": True,
        "address": serialize_address(address),
        "validation": validation,
    }


@router.put("/addresses/{address_id}")
async def update_address(
    address_id: int,
    request: AddressUpdateRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    address = await accounts.update_address(
        user.id, address_id, **request.model_dump(exclude_unset=True)
    )
    return {"success": True, "address": serialize_address(address)}


@router.put("/addresses/{address_id}/default")
async def set_default_address(
    address_id: int,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    address = await accounts.set_default_address(user.id, address_id)
    return {"success": True, "address": serialize_address(address)}


@router.delete("/addresses/{address_id}")
async def delete_address(
    address_id: int,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await accounts.delete_address(user.id, address_id)
    return {"success": True, "message": "Address deleted successfully"}


# ==================== Admin ====================


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    role: UserRole | None = Query(None),
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    users, total = await accounts.list_users(page=page, limit=limit, search=search, role=role)
    return {
        "success": True,
        "users": [serialize_user(u) for u in users],
        "total": total,
        "page": page,
        "total_pages": (total + limit - 1) // limit,
    }


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    user = await accounts.get_user(user_id)
    return {"success": True, "user": serialize_user(user)}


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    user = await accounts.update_user(user_id, **request.model_dump(exclude_unset=True))
    return {"success": True, "user": serialize_user(user)}


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await accounts.delete_user(user_id)
    return {"success": True, "message": "User deleted successfully"}
