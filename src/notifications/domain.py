"""Notifications bounded context — push broadcasts to registered mobile devices.

Owns the device token registry (one Expo push token per user) and the audit
trail of every broadcast sent from the admin dashboard. Delivery itself is
delegated to the push gateway dispatcher in ``notifications.gateway``.
"""

from protean.domain import Domain

from notifications.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

notifications = Domain(name="notifications")
