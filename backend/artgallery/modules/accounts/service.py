"""
Account Service - Registration, login and saved addresses.

Handles:
- Sign-up with e-mailed one-time codes
- Login (unverified accounts get a fresh code instead of a token)
- Password reset
- Address book with a single default address
- Admin user management
"""

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from artgallery.core.security import (
    create_access_token,
    generate_otp,
    hash_password,
    otp_expiry,
    verify_password,
)
from artgallery.models.shop import Order
from artgallery.models.user import Address, User, UserRole
from artgallery.modules.fedex.client import FedExClient
from artgallery.modules.notifications.mailer import Mailer

MIN_PASSWORD_LENGTH = 6


class AccountService:
    """
    Service for user accounts.

    Usage:
        accounts = AccountService(db, mailer=get_mailer())
        user = await accounts.register("Ada", "ada@example.com", "secret1")
    """

    def __init__(
        self,
        db: AsyncSession,
        mailer: Mailer | None = None,
        fedex: FedExClient | None = None,
    ) -> None:
        self.db = db
        self.mailer = mailer
        self.fedex = fedex

    async def get_by_email(self, email: str) -> User | None:
        return await self.db.scalar(select(User).where(User.email == email.strip().lower()))

    async def _require_by_email(self, email: str) -> User:
        user = await self.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _issue_otp(self, user: User, purpose: str = "verification") -> None:
        user.otp_code = generate_otp()
        user.otp_expires_at = otp_expiry()
        await self.db.flush()
        if self.mailer:
            await self.mailer.send_otp(user.email, user.name, user.otp_code, purpose)

    def _check_otp(self, user: User, otp: str) -> None:
        if (
            not user.otp_code
            or user.otp_code != otp.strip()
            or not user.otp_expires_at
            or user.otp_expires_at < datetime.utcnow()
        ):
            raise ValidationError("Invalid or expired OTP")

    # ==================== Registration ====================

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
    ) -> User:
        """Create an unverified account and e-mail a verification code."""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if await self.get_by_email(email):
            raise ConflictError("Email already exists")
        if phone and await self.db.scalar(select(User.id).where(User.phone == phone)):
            raise ConflictError("Phone number already in use")

        user = User(
            name=name.strip(),
            email=email.strip().lower(),
            phone=phone,
            password_hash=hash_password(password),
            role=UserRole.USER,
            is_verified=False,
        )
        self.db.add(user)
        await self.db.flush()
        await self._issue_otp(user)

        logger.info(f"Registered user {user.id}")
        return user

    async def verify_otp(self, email: str, otp: str) -> tuple[User, str]:
        """
        Confirm an e-mail address.

        Returns:
            (user, access token)
        """
        user = await self._require_by_email(email)
        self._check_otp(user, otp)

        user.is_verified = True
        user.otp_code = None
        user.otp_expires_at = None
        user.last_login = datetime.utcnow()
        await self.db.flush()

        return user, create_access_token(user.id, user.role.value)

    async def resend_otp(self, email: str) -> None:
        user = await self._require_by_email(email)
        if user.is_verified:
            raise ValidationError("Email is already verified")
        await self._issue_otp(user)

    # ==================== Login ====================

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate with e-mail and password.

        Raises:
            AuthenticationError: Bad credentials, disabled account, or an
                unverified account (a new code is sent first)
        """
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        if not user.is_verified:
            await self._issue_otp(user)
            # Keep the new code; the request session rolls back on error
            await self.db.commit()
            raise AuthenticationError(
                "Email not verified. New OTP sent.",
                requires_verification=True,
                email=user.email,
            )

        user.last_login = datetime.utcnow()
        await self.db.flush()
        logger.info(f"User {user.id} logged in")
        return user, create_access_token(user.id, user.role.value)

    # ==================== Password reset ====================

    async def forgot_password(self, email: str) -> None:
        user = await self._require_by_email(email)
        await self._issue_otp(user, purpose="password reset")

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        if not email or not otp or not new_password:
            raise ValidationError("Email, OTP and new password required")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user = await self._require_by_email(email)
        self._check_otp(user, otp)

        user.password_hash = hash_password(new_password)
        user.otp_code = None
        user.otp_expires_at = None
        await self.db.flush()
        logger.info(f"Password reset for user {user.id}")

    # ==================== Addresses ====================

    async def get_addresses(self, user_id: int) -> list[Address]:
        result = await self.db.execute(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        )
        return list(result.scalars().all())

    async def get_address(self, user_id: int, address_id: int) -> Address:
        address = await self.db.scalar(
            select(Address).where(Address.id == address_id, Address.user_id == user_id)
        )
        if not address:
            raise NotFoundError("Address not found")
        return address

    async def _clear_default(self, user_id: int, keep_id: int | None = None) -> None:
        query = update(Address).where(Address.user_id == user_id).values(is_default=False)
        if keep_id is not None:
            query = query.where(Address.id != keep_id)
        await self.db.execute(query.execution_options(synchronize_session="fetch"))

    async def _apply_validation(self, address: Address) -> dict[str, Any] | None:
        if self.fedex is None:
            return None

        result = await self.fedex.validate_address(address.to_shipping_dict())
        address.fedex_validated = bool(result.get("is_valid"))
        address.fedex_classification = result.get("classification")
        address.normalized_address = result.get("normalized_address")
        if result.get("classification") in ("RESIDENTIAL", "BUSINESS"):
            address.is_residential = result.get("is_residential", address.is_residential)
        return result

    async def add_address(
        self,
        user_id: int,
        validate: bool = False,
        **fields: Any,
    ) -> tuple[Address, dict[str, Any] | None]:
        """
        Save an address. The first address becomes the default.

        Returns:
            (address, FedEx validation result when requested)
        """
        count = await self.db.scalar(
            select(func.count(Address.id)).where(Address.user_id == user_id)
        )
        make_default = bool(fields.pop("is_default", False)) or not count

        try:
            address = Address(user_id=user_id, is_default=make_default, **fields)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if make_default and count:
            await self._clear_default(user_id)

        validation = await self._apply_validation(address) if validate else None

        self.db.add(address)
        await self.db.flush()
        return address, validation

    async def update_address(self, user_id: int, address_id: int, **fields: Any) -> Address:
        address = await self.get_address(user_id, address_id)
        make_default = fields.pop("is_default", None)

        try:
            for key, value in fields.items():
                setattr(address, key, value)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if make_default:
            await self._clear_default(user_id, keep_id=address.id)
            address.is_default = True

        # Edited addresses need validating again
        if {"street_line1", "street_line2", "city", "state_code", "zip_code"} & fields.keys():
            address.fedex_validated = False
            address.normalized_address = None

        await self.db.flush()
        return address

    async def set_default_address(self, user_id: int, address_id: int) -> Address:
        address = await self.get_address(user_id, address_id)
        await self._clear_default(user_id, keep_id=address.id)
        address.is_default = True
        await self.db.flush()
        return address

    async def delete_address(self, user_id: int, address_id: int) -> None:
        """Delete an address, promoting the newest remaining one to default."""
        address = await self.get_address(user_id, address_id)
        was_default = address.is_default
        await self.db.delete(address)
        await self.db.flush()

        if was_default:
            successor = await self.db.scalar(
                select(Address)
                .where(Address.user_id == user_id)
                .order_by(Address.created_at.desc(), Address.id.desc())
                .limit(1)
            )
            if successor:
                successor.is_default = True
                await self.db.flush()

    # ==================== Admin ====================

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> tuple[list[User], int]:
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(User.name.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern))
            )
        if role:
            filters.append(User.role == role)

        total = await self.db.scalar(select(func.count(User.id)).where(*filters))
        result = await self.db.execute(
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_user(self, user_id: int, **fields: Any) -> User:
        user = await self.get_user(user_id)

        email = fields.get("email")
        if email:
            fields["email"] = email = email.strip().lower()
            if email != user.email and await self.get_by_email(email):
                raise ConflictError("Email already in use")

        phone = fields.get("phone")
        if phone and phone != user.phone:
            taken = await self.db.scalar(
                select(User.id).where(User.phone == phone, User.id != user.id)
            )
            if taken:
                raise ConflictError("Phone number already in use")

        for key, value in fields.items():
            setattr(user, key, value)
        await self.db.flush()
        return user

    async def delete_user(self, user_id: int) -> None:
        """Delete an account that has never ordered; others can be deactivated."""
        user = await self.get_user(user_id)
        has_orders = await self.db.scalar(
            select(func.count(Order.id)).where(Order.user_id == user_id)
        )
        if has_orders:
            raise ValidationError(
                "User has orders and cannot be deleted; deactivate the account instead"
            )
        await self.db.delete(user)
        await self.db.flush()
        logger.info(f"Deleted user {user_id}")


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role.value,
        "is_verified": user.is_verified,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


def serialize_address(address: Address) -> dict[str, Any]:
    return {
        "id": address.id,
        **address.to_shipping_dict(),
        "is_default": address.is_default,
        "fedex_validated": address.fedex_validated,
        "fedex_classification": address.fedex_classification,
        "normalized_address": address.normalized_address,
    }
