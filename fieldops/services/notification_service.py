"""
Contractor Notification Service
Best-effort delivery of dispatch events to the contractor's notification channel.
Formatting and provider selection (SMS/push/email) live behind the webhook.
"""

import logging
from typing import Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)

# Event types emitted by the dispatch core
QUOTE_ACCEPTED = "quote_accepted"
JOB_CANCELLED = "job_cancelled"
JOB_CANCELLATION_REQUESTED = "job_cancellation_requested"
CANCELLATION_APPROVED = "cancellation_approved"
CANCELLATION_DENIED = "cancellation_denied"
JOB_ASSIGNED = "job_assigned"


def notify(
    contractor_id: str,
    event_type: str,
    payload: dict,
    webhook_url: Optional[str] = None,
) -> bool:
    """
    Send a notification event. Never raises into the caller.

    Returns:
        True if the webhook accepted the event, False if skipped or failed
    """
    url = webhook_url or config.NOTIFICATION_WEBHOOK_URL
    if not url:
        logger.debug(f"ℹ️ No notification webhook configured - skipping {event_type}")
        return False

    body = {"contractorId": contractor_id, "eventType": event_type, "payload": payload}

    try:
        logger.info(f"📧 Sending {event_type} notification for contractor {contractor_id}")
        response = httpx.post(url, json=body, timeout=config.INTEGRATION_TIMEOUT_SECONDS)
        response.raise_for_status()
        logger.info(f"✅ {event_type} notification delivered for contractor {contractor_id}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {event_type} notification for contractor {contractor_id}: {e}")
        return False
