"""
Accounts Module - Users, authentication flows and address book.
"""

from artgallery.modules.accounts.service import (
    AccountService,
    serialize_address,
    serialize_user,
)

__all__ = [
    "AccountService",
    "serialize_address",
    "serialize_user",
]
