from app.db import get_db
from app.services import email as email_service
from app.services.auth_dependencies import SessionContext, require_user_auth
from app.services.storage import StorageService, storage


def get_mailer() -> email_service.Mailer:
    return email_service.send_email


def get_storage() -> StorageService:
    return storage


__all__ = [
    "SessionContext",
    "get_db",
    "get_mailer",
    "get_storage",
    "require_user_auth",
]
