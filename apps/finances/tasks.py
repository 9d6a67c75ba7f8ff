"""Celery tasks for the finance domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from . import services
from .models import Payout, RefundRequest

logger = logging.getLogger(__name__)


@shared_task(name="finances.schedule_owner_payouts")
def schedule_owner_payouts() -> dict[str, int]:
    """
    Pay venue owners for completed bookings. Runs daily.

    Returns:
        dict: {"created": ..., "processed": ..., "failed": ...}
    """
    result = services.schedule_owner_payouts()
    for payout_id in result.pop("payout_ids"):
        notify_payout.delay(payout_id)
    if result["created"]:
        logger.info(f"Created {result['created']} payouts ({result['failed']} failed)")
    return result


@shared_task(name="finances.notify_refund_decision")
def notify_refund_decision(refund_id: int) -> bool:
    try:
        refund = RefundRequest.objects.select_related("booking", "booking__venue", "requested_by").get(id=refund_id)
    except RefundRequest.DoesNotExist:
        logger.error(f"Refund request {refund_id} not found for notification")
        return False
    from apps.notifications.services import notify_refund_decision as send

    send(refund)
    return True


@shared_task(name="finances.notify_payout")
def notify_payout(payout_id: int) -> bool:
    try:
        payout = Payout.objects.select_related("owner", "booking").get(id=payout_id)
    except Payout.DoesNotExist:
        logger.error(f"Payout {payout_id} not found for notification")
        return False
    from apps.notifications.services import notify_payout as send

    send(payout)
    return True
