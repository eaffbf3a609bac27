from .email_change_repository import EmailChangeRepository
from .user_repository import UserRepository

__all__ = ["EmailChangeRepository", "UserRepository"]
