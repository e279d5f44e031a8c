"""
Push gateway backends.

One backend is chosen at process start from PUSH_BACKEND:
- firebase: Firebase Cloud Messaging via firebase_admin
- log: writes the notification to the log, for local development and tests
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from . import config

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: list[str] = field(default_factory=list)


class PushGateway(Protocol):
    def send(self, tokens: list[str], title: str, body: str, data: Optional[dict] = None) -> PushResult:
        """Fan out one notification to device tokens. Raises on transport failure."""
        ...


class FirebasePushGateway:
    """Firebase Cloud Messaging multicast sender"""

    def __init__(self, credentials_path: Optional[str] = None, project_id: Optional[str] = None):
        import firebase_admin
        from firebase_admin import credentials

        if not firebase_admin._apps:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
            logger.info("✅ Firebase Admin initialized")

    def send(self, tokens: list[str], title: str, body: str, data: Optional[dict] = None) -> PushResult:
        from firebase_admin import exceptions as firebase_exceptions
        from firebase_admin import messaging

        if not tokens:
            return PushResult()

        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            # FCM data payload values must be strings
            data={k: str(v) for k, v in (data or {}).items() if v is not None},
            android=messaging.AndroidConfig(
                priority="high", notification=messaging.AndroidNotification(sound="default")
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default"))
            ),
        )
        response = messaging.send_each_for_multicast(message)

        invalid_tokens = []
        for token, res in zip(tokens, response.responses):
            if res.success:
                continue
            if isinstance(
                res.exception,
                (messaging.UnregisteredError, firebase_exceptions.InvalidArgumentError),
            ):
                invalid_tokens.append(token)
            else:
                logger.warning(f"⚠️ Push to token failed: {res.exception}")

        return PushResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            invalid_tokens=invalid_tokens,
        )


class LoggingPushGateway:
    """Logs notifications instead of delivering them"""

    def send(self, tokens: list[str], title: str, body: str, data: Optional[dict] = None) -> PushResult:
        logger.info(f"📤 [push:log] {len(tokens)} token(s): {title} - {body} {data or {}}")
        return PushResult(success_count=len(tokens))


def create_push_gateway(backend: str) -> PushGateway:
    if backend == "firebase":
        return FirebasePushGateway(config.FIREBASE_CREDENTIALS_PATH, config.FIREBASE_PROJECT_ID)
    if backend == "log":
        return LoggingPushGateway()
    raise ValueError(f"Unknown push backend: {backend}")


_gateway: Optional[PushGateway] = None


def get_push_gateway() -> PushGateway:
    global _gateway
    if _gateway is None:
        _gateway = create_push_gateway(config.PUSH_BACKEND)
        logger.info(f"📤 Push backend: {config.PUSH_BACKEND}")
    return _gateway


def set_push_gateway(gateway: Optional[PushGateway]) -> None:
    """Replace the process-wide gateway (None resets to the configured backend)"""
    global _gateway
    _gateway = gateway
