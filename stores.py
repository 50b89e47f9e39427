"""SQLite-backed stores for users, books, reservations and notifications.

Every method opens its own connection and closes it before returning, so a
store instance holds no connection state and can be shared between requests.
"""

import sqlite3
from typing import List, Optional

from database import get_db_connection
from errors import ConflictError
from models import (
    Book,
    Notification,
    PublicUser,
    Reservation,
    ReservationStatus,
    ResolvedReservation,
    User,
)


class _SQLiteStore:
    def __init__(self, db_file: str) -> None:
        self.db_file = db_file

    def _connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file)


class UserDirectory(_SQLiteStore):
    """Lookup and persistence for user records."""

    _COLUMNS = "id, name, email, password, phone_number, is_approved, is_admin, created_at"

    def insert(self, user: User) -> User:
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT INTO users ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    user.id,
                    user.name,
                    user.email,
                    user.password_hash,
                    user.phone_number,
                    int(user.is_approved),
                    int(user.is_admin),
                    user.created_at,
                ),
            )
            conn.commit()
            return user
        except sqlite3.IntegrityError as e:
            raise ConflictError("User already exists") from e
        finally:
            conn.close()

    def find_by_id(self, user_id: str) -> Optional[User]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            return User.from_row(row) if row else None
        finally:
            conn.close()

    def find_by_email(self, email: str) -> Optional[User]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE email = ?", (email,)).fetchone()
            return User.from_row(row) if row else None
        finally:
            conn.close()

    def find_admins(self) -> List[User]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {self._COLUMNS} FROM users WHERE is_admin = 1 ORDER BY created_at"
            ).fetchall()
            return [User.from_row(row) for row in rows]
        finally:
            conn.close()

    def list_all(self) -> List[PublicUser]:
        conn = self._connect()
        try:
            rows = conn.execute(f"SELECT {self._COLUMNS} FROM users ORDER BY created_at").fetchall()
            return [User.from_row(row).public() for row in rows]
        finally:
            conn.close()

    def update_profile(
        self,
        user_id: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Optional[User]:
        """Write the given profile fields in one statement and return the updated user."""
        assignments = []
        params: list = []
        for column, value in (("name", name), ("email", email), ("phone_number", phone_number)):
            if value is not None:
                assignments.append(f"{column} = ?")
                params.append(value)
        if not assignments:
            return self.find_by_id(user_id)

        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE users SET {', '.join(assignments)} WHERE id = ?",
                (*params, user_id),
            )
            row = None
            if cursor.rowcount:
                row = conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            conn.commit()
            return User.from_row(row) if row else None
        except sqlite3.IntegrityError as e:
            raise ConflictError("Email is already in use") from e
        finally:
            conn.close()

    def set_approved(self, user_id: str, approved: bool = True) -> Optional[User]:
        conn = self._connect()
        try:
            cursor = conn.execute("UPDATE users SET is_approved = ? WHERE id = ?", (int(approved), user_id))
            row = None
            if cursor.rowcount:
                row = conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            conn.commit()
            return User.from_row(row) if row else None
        finally:
            conn.close()


class BookCatalog(_SQLiteStore):
    """Read access to the book catalog, plus adding new titles."""

    def find_by_id(self, book_id: str) -> Optional[Book]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT id, title, author, isbn, description, created_at FROM books WHERE id = ?",
                (book_id,),
            ).fetchone()
            return Book.from_row(row) if row else None
        finally:
            conn.close()

    def list_all(self, query: Optional[str] = None) -> List[Book]:
        conn = self._connect()
        try:
            if query:
                cursor = conn.execute(
                    "SELECT id, title, author, isbn, description, created_at FROM books "
                    "WHERE title LIKE ? OR author LIKE ? ORDER BY title",
                    (f"%{query}%", f"%{query}%"),
                )
            else:
                cursor = conn.execute(
                    "SELECT id, title, author, isbn, description, created_at FROM books ORDER BY title"
                )
            return [Book.from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def add(self, book: Book) -> Book:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO books (id, title, author, isbn, description, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (book.id, book.title, book.author, book.isbn, book.description, book.created_at),
            )
            conn.commit()
            return book
        finally:
            conn.close()


class ReservationStore(_SQLiteStore):
    _RESOLVED_SELECT = """
        SELECT r.id, r.start_date, r.end_date, r.status, r.created_at,
               u.id AS u_id, u.name AS u_name, u.email AS u_email,
               u.phone_number AS u_phone_number, u.is_approved AS u_is_approved,
               u.is_admin AS u_is_admin, u.created_at AS u_created_at,
               b.id AS b_id, b.title AS b_title, b.author AS b_author,
               b.isbn AS b_isbn, b.description AS b_description, b.created_at AS b_created_at
        FROM reservations r
        JOIN users u ON u.id = r.user_id
        JOIN books b ON b.id = r.book_id
    """

    def insert(self, reservation: Reservation) -> Reservation:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO reservations (id, user_id, book_id, start_date, end_date, status, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    reservation.id,
                    reservation.user_id,
                    reservation.book_id,
                    reservation.start_date.isoformat(),
                    reservation.end_date.isoformat(),
                    reservation.status.value,
                    reservation.created_at,
                ),
            )
            conn.commit()
            return reservation
        finally:
            conn.close()

    def find_by_id(self, reservation_id: str) -> Optional[Reservation]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT id, user_id, book_id, start_date, end_date, status, created_at "
                "FROM reservations WHERE id = ?",
                (reservation_id,),
            ).fetchone()
            return Reservation.from_row(row) if row else None
        finally:
            conn.close()

    def find_resolved_by_id(self, reservation_id: str) -> Optional[ResolvedReservation]:
        conn = self._connect()
        try:
            row = conn.execute(self._RESOLVED_SELECT + " WHERE r.id = ?", (reservation_id,)).fetchone()
            return self._resolved_from_row(row) if row else None
        finally:
            conn.close()

    def find_all_resolved(self) -> List[ResolvedReservation]:
        conn = self._connect()
        try:
            rows = conn.execute(self._RESOLVED_SELECT + " ORDER BY r.created_at").fetchall()
            return [self._resolved_from_row(row) for row in rows]
        finally:
            conn.close()

    def set_status(self, reservation_id: str, status: ReservationStatus) -> Optional[Reservation]:
        """Atomically set the status and return the reservation as written, or None if absent."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE reservations SET status = ? WHERE id = ?",
                (status.value, reservation_id),
            )
            row = None
            if cursor.rowcount:
                row = conn.execute(
                    "SELECT id, user_id, book_id, start_date, end_date, status, created_at "
                    "FROM reservations WHERE id = ?",
                    (reservation_id,),
                ).fetchone()
            conn.commit()
            return Reservation.from_row(row) if row else None
        finally:
            conn.close()

    @staticmethod
    def _resolved_from_row(row) -> ResolvedReservation:
        data = dict(row)
        user = PublicUser(
            id=data["u_id"],
            name=data["u_name"],
            email=data["u_email"],
            phone_number=data["u_phone_number"],
            is_approved=bool(data["u_is_approved"]),
            is_admin=bool(data["u_is_admin"]),
            created_at=data["u_created_at"],
        )
        book = Book(
            id=data["b_id"],
            title=data["b_title"],
            author=data["b_author"],
            isbn=data["b_isbn"],
            description=data["b_description"],
            created_at=data["b_created_at"],
        )
        base = Reservation.from_row({**data, "user_id": user.id, "book_id": book.id})
        return ResolvedReservation(
            id=base.id,
            user=user,
            book=book,
            start_date=base.start_date,
            end_date=base.end_date,
            status=base.status,
            created_at=base.created_at,
        )


class NotificationStore(_SQLiteStore):
    def insert(self, notification: Notification) -> Notification:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO notifications (id, user_id, message, type, is_read, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    notification.id,
                    notification.user_id,
                    notification.message,
                    notification.type.value,
                    int(notification.is_read),
                    notification.created_at,
                ),
            )
            conn.commit()
            return notification
        finally:
            conn.close()

    def find_by_user(self, user_id: str) -> List[Notification]:
        """Notifications for ``user_id``, newest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT id, user_id, message, type, is_read, created_at FROM notifications "
                "WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
            return [Notification.from_row(row) for row in rows]
        finally:
            conn.close()

    def mark_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            row = None
            if cursor.rowcount:
                row = conn.execute(
                    "SELECT id, user_id, message, type, is_read, created_at FROM notifications WHERE id = ?",
                    (notification_id,),
                ).fetchone()
            conn.commit()
            return Notification.from_row(row) if row else None
        finally:
            conn.close()
