"""Security utilities: Slack request signing."""

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

# Requests older (or newer) than this are treated as replays
SLACK_TIMESTAMP_TOLERANCE_SECONDS = 60 * 5


def compute_slack_signature(body: bytes, timestamp: str, signing_secret: str) -> str:
    """Compute the `v0=` signature Slack sends in X-Slack-Signature."""
    sig_basestring = b"v0:" + timestamp.encode() + b":" + body
    return "v0=" + hmac.new(
        signing_secret.encode(),
        sig_basestring,
        hashlib.sha256,
    ).hexdigest()


def verify_slack_signature(
    body: bytes,
    timestamp: str | None,
    signature: str | None,
    signing_secret: str | None,
    now: float | None = None,
) -> bool:
    """
    Verify Slack request signature using HMAC-SHA256.

    The body must be the raw request bytes; a re-serialized body will not match.

    See: https://api.slack.com/authentication/verifying-requests-from-slack
    """
    if not signing_secret:
        logger.error("Slack signing secret not configured")
        return False

    if not signature or not timestamp:
        logger.warning("Missing X-Slack-Signature or X-Slack-Request-Timestamp header")
        return False

    # Check timestamp to prevent replay attacks (5 minutes)
    try:
        request_timestamp = int(timestamp)
    except ValueError:
        logger.warning(f"Malformed Slack request timestamp: {timestamp!r}")
        return False

    current = time.time() if now is None else now
    if abs(current - request_timestamp) > SLACK_TIMESTAMP_TOLERANCE_SECONDS:
        logger.warning(f"Slack request timestamp outside window: {timestamp} vs {int(current)}")
        return False

    expected_sig = compute_slack_signature(body, timestamp, signing_secret)
    is_valid = hmac.compare_digest(expected_sig.encode(), signature.encode())
    if not is_valid:
        logger.warning("Slack signature mismatch")
    return is_valid
