"""Notifications Module - transactional e-mail."""

from artgallery.modules.notifications.mailer import Mailer, get_mailer

__all__ = ["Mailer", "get_mailer"]
