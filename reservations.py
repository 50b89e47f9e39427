import logging
from datetime import date
from typing import List

from errors import ForbiddenError, InvalidInputError, NotFoundError
from models import (
    NotificationType,
    Reservation,
    ReservationStatus,
    ResolvedReservation,
    new_id,
    utc_now,
)
from notifications import NotificationDispatcher
from stores import BookCatalog, ReservationStore, UserDirectory

logger = logging.getLogger(__name__)

# Statuses an admin may move a reservation to.
DECISION_STATUSES = (ReservationStatus.APPROVED, ReservationStatus.REJECTED)


class ReservationService:
    """Creates reservations, applies admin decisions and guards who may read them.

    Lifecycle: ``pending`` -> ``approved`` or ``pending`` -> ``rejected``.
    A decision may be applied again to an already decided reservation; the
    status is overwritten and the owner is notified again.
    """

    def __init__(
        self,
        reservations: ReservationStore,
        books: BookCatalog,
        users: UserDirectory,
        notifications: NotificationDispatcher,
    ) -> None:
        self.reservations = reservations
        self.books = books
        self.users = users
        self.notifications = notifications

    def create_reservation(self, requester_id: str, book_id: str, start_date: date, end_date: date) -> Reservation:
        book = self.books.find_by_id(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        requester = self.users.find_by_id(requester_id)
        if requester is None:
            raise NotFoundError("User not found")
        if end_date < start_date:
            raise InvalidInputError("End date must not be before start date")

        # No overlap check against other reservations of the same book
        reservation = Reservation(
            id=new_id(),
            user_id=requester.id,
            book_id=book.id,
            start_date=start_date,
            end_date=end_date,
            status=ReservationStatus.PENDING,
            created_at=utc_now(),
        )
        self.reservations.insert(reservation)
        logger.info(f"Reservation {reservation.id} created by {requester.id} for book {book.id}")

        self.notifications.notify_admins(
            f'New reservation request from {requester.name} for "{book.title}"',
            NotificationType.NEW_RESERVATION,
        )
        return reservation

    def update_reservation_status(self, reservation_id: str, new_status, actor_is_admin: bool) -> Reservation:
        if not actor_is_admin:
            raise ForbiddenError("Only admins can change a reservation status")
        try:
            status = ReservationStatus(new_status)
        except ValueError:
            raise InvalidInputError(f"Invalid status: {new_status}") from None
        if status not in DECISION_STATUSES:
            raise InvalidInputError(f"Invalid status: {status.value}")

        updated = self.reservations.set_status(reservation_id, status)
        if updated is None:
            raise NotFoundError("Reservation not found")
        logger.info(f"Reservation {reservation_id} set to {status.value}")

        book = self.books.find_by_id(updated.book_id)
        title = book.title if book else updated.book_id
        self.notifications.create_notification(
            updated.user_id,
            f'Your reservation for "{title}" has been {status.value}',
            NotificationType.RESERVATION_STATUS,
        )
        return updated

    def get_reservation(self, reservation_id: str, viewer_id: str, viewer_is_admin: bool) -> ResolvedReservation:
        reservation = self.reservations.find_resolved_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        if not viewer_is_admin and reservation.owner_id != viewer_id:
            raise ForbiddenError("Not authorized to view this reservation")
        return reservation

    def get_reservations(self, viewer_is_admin: bool) -> List[ResolvedReservation]:
        # Route layer restricts this to admins; no filtering happens here
        return self.reservations.find_all_resolved()
