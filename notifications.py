import logging
from typing import List, Optional

from errors import NotFoundError
from models import Notification, NotificationType, new_id, utc_now
from stores import NotificationStore, UserDirectory

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Records notifications for users.

    Delivery is best-effort: ``create_notification`` and ``notify_admins`` log
    store failures and return normally so the operation that triggered them
    is never aborted.
    """

    def __init__(self, store: NotificationStore, users: UserDirectory) -> None:
        self.store = store
        self.users = users

    def create_notification(self, user_id: str, message: str, type: NotificationType) -> Optional[Notification]:
        try:
            notification = Notification(
                id=new_id(),
                user_id=user_id,
                message=message,
                type=NotificationType(type),
                created_at=utc_now(),
            )
            self.store.insert(notification)
        except Exception as e:
            logger.error(f"Error creating notification: {e}", exc_info=True)
            return None
        return notification

    def notify_admins(self, message: str, type: NotificationType) -> int:
        """Notify every admin; returns how many notifications were recorded."""
        try:
            admins = self.users.find_admins()
        except Exception as e:
            logger.error(f"Error resolving admins for notification: {e}", exc_info=True)
            return 0

        sent = 0
        for admin in admins:
            if self.create_notification(admin.id, message, type) is not None:
                sent += 1
        logger.info(f"Notified {sent}/{len(admins)} admins ({getattr(type, 'value', type)})")
        return sent

    def get_notifications(self, user_id: str) -> List[Notification]:
        return self.store.find_by_user(user_id)

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        notification = self.store.mark_read(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification
