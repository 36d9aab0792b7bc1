"""
DANA Python SDK - Webhook Verification Module

Fail-closed RSA signature verification for inbound partner notifications.
"""

from .verifier import (
    WebhookVerifier,
    create_webhook_verifier,
    verify_webhook_signature,
)

__all__ = [
    'WebhookVerifier',
    'create_webhook_verifier',
    'verify_webhook_signature',
]
