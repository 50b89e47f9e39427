from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string; sorts chronologically as text."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    NEW_USER = "new_user"
    NEW_RESERVATION = "new_reservation"
    RESERVATION_STATUS = "reservation_status"


@dataclass
class PublicUser:
    """A user record without the password hash, safe to return to clients."""

    id: str
    name: str
    email: str
    phone_number: Optional[str]
    is_approved: bool
    is_admin: bool
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    phone_number: Optional[str] = None
    is_approved: bool = False
    is_admin: bool = False
    created_at: Optional[str] = None

    def public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            name=self.name,
            email=self.email,
            phone_number=self.phone_number,
            is_approved=self.is_approved,
            is_admin=self.is_admin,
            created_at=self.created_at,
        )

    @staticmethod
    def from_row(row) -> "User":
        data = dict(row)
        return User(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            password_hash=data["password"],
            phone_number=data.get("phone_number"),
            is_approved=bool(data.get("is_approved")),
            is_admin=bool(data.get("is_admin")),
            created_at=data.get("created_at"),
        )


@dataclass
class Book:
    id: str
    title: str
    author: str
    isbn: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_row(row) -> "Book":
        data = dict(row)
        return Book(
            id=data["id"],
            title=data["title"],
            author=data["author"],
            isbn=data.get("isbn"),
            description=data.get("description"),
            created_at=data.get("created_at"),
        )


@dataclass
class Reservation:
    """A reservation carrying only the ids of its user and book."""

    id: str
    user_id: str
    book_id: str
    start_date: date
    end_date: date
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_id": self.book_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_row(row) -> "Reservation":
        data = dict(row)
        return Reservation(
            id=data["id"],
            user_id=data["user_id"],
            book_id=data["book_id"],
            start_date=date.fromisoformat(data["start_date"]),
            end_date=date.fromisoformat(data["end_date"]),
            status=ReservationStatus(data["status"]),
            created_at=data.get("created_at"),
        )


@dataclass
class ResolvedReservation:
    """A reservation with its user and book records embedded for display."""

    id: str
    user: PublicUser
    book: Book
    start_date: date
    end_date: date
    status: ReservationStatus
    created_at: Optional[str] = None

    @property
    def owner_id(self) -> str:
        return self.user.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": self.user.to_dict(),
            "book": self.book.to_dict(),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass
class Notification:
    id: str
    user_id: str
    message: str
    type: NotificationType
    is_read: bool = False
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "type": self.type.value,
            "is_read": self.is_read,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_row(row) -> "Notification":
        data = dict(row)
        return Notification(
            id=data["id"],
            user_id=data["user_id"],
            message=data["message"],
            type=NotificationType(data["type"]),
            is_read=bool(data.get("is_read")),
            created_at=data.get("created_at"),
        )
