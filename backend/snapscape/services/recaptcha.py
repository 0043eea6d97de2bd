"""
reCAPTCHA token verification (Google siteverify over httpx)
"""

import logging

import httpx

from snapscape.core.config import settings

logger = logging.getLogger(__name__)

VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


async def verify_recaptcha(token: str | None, remote_ip: str | None = None) -> bool:
    """True when the token verifies, or when no secret is configured."""
    if not settings.RECAPTCHA_SECRET_KEY:
        return True
    if not token:
        return False

    data = {"secret": settings.RECAPTCHA_SECRET_KEY, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(VERIFY_URL, data=data)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as e:
        logger.error(f"reCAPTCHA verification request failed: {e}")
        return False

    if not payload.get("success"):
        logger.info(f"reCAPTCHA rejected: {payload.get('error-codes')}")
        return False

    # v3 tokens carry a score; v2 tokens do not
    score = payload.get("score")
    if score is not None and score < settings.RECAPTCHA_MIN_SCORE:
        logger.info(f"reCAPTCHA score too low: {score}")
        return False
    return True
