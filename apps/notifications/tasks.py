"""Celery tasks for notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from . import services

logger = logging.getLogger(__name__)


@shared_task(name="notifications.cleanup_old_notifications")
def cleanup_old_notifications() -> dict[str, int]:
    """Purge read notifications past the retention window. Runs daily."""
    deleted = services.cleanup_old_notifications()
    return {"deleted": deleted}


@shared_task(name="notifications.send_announcement")
def send_announcement(title: str, message: str, roles: list[str] | None = None) -> dict[str, int]:
    created = services.send_announcement_to_all_users(title, message, roles=roles)
    logger.info("Announcement task finished: %s notifications", created)
    return {"created": created}
