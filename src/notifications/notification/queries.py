"""Read helpers over the Notification repository."""

from notifications.notification.notification import Notification, NotificationStatus
from protean.utils.globals import current_domain

PAGE_SIZE = 100


def recent_notifications(limit: int = 50) -> list[Notification]:
    """Audit history, newest first."""
    repo = current_domain.repository_for(Notification)
    return repo._dao.query.order_by("-created_at").limit(limit).all().items


def scheduled_notifications() -> list[Notification]:
    """Every SCHEDULED notification, read page by page."""
    repo = current_domain.repository_for(Notification)
    results: list[Notification] = []
    offset = 0
    while True:
        query = repo._dao.query.filter(status=NotificationStatus.SCHEDULED.value).order_by("created_at")
        page = query.offset(offset).limit(PAGE_SIZE).all()
        results.extend(page.items)
        if not page.has_next:
            break
        offset += PAGE_SIZE
    return results


def due_notifications(as_of) -> list[Notification]:
    """Scheduled notifications whose time has come, oldest schedule first."""
    due = [notification for notification in scheduled_notifications() if notification.is_due(as_of)]
    return sorted(due, key=lambda notification: notification.scheduled_for)
