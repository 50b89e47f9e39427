import logging
from dataclasses import dataclass
from typing import List, Optional

from errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    PendingApprovalError,
)
from models import NotificationType, PublicUser, User, new_id, utc_now
from notifications import NotificationDispatcher
from security import PasswordHasher, TokenIssuer
from stores import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    token: str
    user_id: str


@dataclass
class LoginResult:
    token: str
    is_admin: bool


class AccountService:
    """Registration, login and user profile management."""

    def __init__(
        self,
        users: UserDirectory,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        notifications: NotificationDispatcher,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.notifications = notifications

    # ------------------------- Authentication ------------------------- #
    def register(self, name: str, email: str, phone_number: str, password: str) -> RegistrationResult:
        """Create an unapproved account and tell the admins about it."""
        if self.users.find_by_email(email):
            raise ConflictError("User already exists")

        user = User(
            id=new_id(),
            name=name.strip(),
            email=email,
            password_hash=self.hasher.hash(password),
            phone_number=phone_number,
            is_approved=False,
            is_admin=False,
            created_at=utc_now(),
        )
        self.users.insert(user)
        logger.info(f"Registered user {user.id}")

        self.notifications.notify_admins(f"New user registered: {user.name}", NotificationType.NEW_USER)

        token = self.tokens.sign({"user": {"id": user.id}})
        return RegistrationResult(token=token, user_id=user.id)

    def login(self, email: str, password: str) -> LoginResult:
        user = self.users.find_by_email(email)
        # Unknown email and wrong password must look the same to the caller
        if user is None or not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_approved:
            raise PendingApprovalError()

        token = self.tokens.sign({"user": {"id": user.id, "isAdmin": user.is_admin}})
        return LoginResult(token=token, is_admin=user.is_admin)

    # ------------------------- Profiles ------------------------- #
    def get_user(self, user_id: str) -> PublicUser:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.public()

    def update_user(
        self,
        user_id: str,
        actor_id: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> PublicUser:
        """Update the caller's own profile fields. Nobody may edit another user's profile."""
        if self.users.find_by_id(user_id) is None:
            raise NotFoundError("User not found")
        if actor_id != user_id:
            raise ForbiddenError("Not authorized to update this user")

        updated = self.users.update_profile(
            user_id,
            name=name.strip() if name is not None else None,
            email=email,
            phone_number=phone_number,
        )
        if updated is None:
            raise NotFoundError("User not found")
        return updated.public()

    def approve_user(self, user_id: str) -> PublicUser:
        user = self.users.set_approved(user_id, True)
        if user is None:
            raise NotFoundError("User not found")
        logger.info(f"Approved user {user_id}")
        return user.public()

    def get_all_users(self) -> List[PublicUser]:
        return self.users.list_all()

    def create_admin(self, name: str, email: str, phone_number: str, password: str) -> PublicUser:
        """Create an approved admin account. Used to bootstrap a fresh deployment."""
        if self.users.find_by_email(email):
            raise ConflictError("User already exists")
        admin = User(
            id=new_id(),
            name=name.strip(),
            email=email,
            password_hash=self.hasher.hash(password),
            phone_number=phone_number,
            is_approved=True,
            is_admin=True,
            created_at=utc_now(),
        )
        self.users.insert(admin)
        logger.info(f"Created admin {admin.id}")
        return admin.public()
