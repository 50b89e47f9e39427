from dataclasses import dataclass
from typing import Optional

import database
from accounts import AccountService
from config import Settings, settings as default_settings
from notifications import NotificationDispatcher
from reservations import ReservationService
from security import PasswordHasher, TokenIssuer
from stores import BookCatalog, NotificationStore, ReservationStore, UserDirectory


@dataclass
class AppContext:
    """Everything a request handler or CLI command needs, built once and passed in."""

    settings: Settings
    db_file: str
    users: UserDirectory
    books: BookCatalog
    reservation_store: ReservationStore
    notification_store: NotificationStore
    hasher: PasswordHasher
    tokens: TokenIssuer
    notifications: NotificationDispatcher
    accounts: AccountService
    reservations: ReservationService

    def initialize(self) -> None:
        database.initialize_database(self.db_file)


def build_context(settings: Optional[Settings] = None, db_file: Optional[str] = None) -> AppContext:
    settings = settings or default_settings
    db_file = db_file or settings.db_file or database.DEFAULT_DATABASE_FILE

    users = UserDirectory(db_file)
    books = BookCatalog(db_file)
    reservation_store = ReservationStore(db_file)
    notification_store = NotificationStore(db_file)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenIssuer(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expiration_minutes=settings.jwt_expiration_minutes,
    )
    dispatcher = NotificationDispatcher(notification_store, users)

    return AppContext(
        settings=settings,
        db_file=db_file,
        users=users,
        books=books,
        reservation_store=reservation_store,
        notification_store=notification_store,
        hasher=hasher,
        tokens=tokens,
        notifications=dispatcher,
        accounts=AccountService(users, hasher, tokens, dispatcher),
        reservations=ReservationService(reservation_store, books, users, dispatcher),
    )
