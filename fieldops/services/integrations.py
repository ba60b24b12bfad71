"""
Calendar and chat cleanup for cancelled jobs

Both collaborators are remote services; calls are skipped when the service
URL is not configured. Errors propagate so the side-effect runner can log them.
"""

import logging

import httpx

from .. import config

logger = logging.getLogger(__name__)


def release_schedule_hold(contractor_id: str, job_id: str) -> bool:
    """Free any calendar/schedule hold reserved for the job"""
    if not config.CALENDAR_SERVICE_URL:
        logger.debug(f"ℹ️ Calendar service not configured - no hold to release for job {job_id}")
        return False

    url = f"{config.CALENDAR_SERVICE_URL.rstrip('/')}/contractors/{contractor_id}/holds/{job_id}"
    response = httpx.delete(url, timeout=config.INTEGRATION_TIMEOUT_SECONDS)
    # Nothing held is as good as released
    if response.status_code != 404:
        response.raise_for_status()
    logger.info(f"📅 Schedule hold released for job {job_id}")
    return True


def archive_chat_channel(channel_id: str, job_id: str, reason: str) -> bool:
    if not config.CHAT_SERVICE_URL:
        logger.debug(f"ℹ️ Chat service not configured - channel {channel_id} left as is")
        return False

    url = f"{config.CHAT_SERVICE_URL.rstrip('/')}/channels/{channel_id}/archive"
    response = httpx.post(
        url,
        json={"jobId": job_id, "reason": reason},
        timeout=config.INTEGRATION_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    logger.info(f"💬 Chat channel {channel_id} archived for job {job_id}")
    return True
