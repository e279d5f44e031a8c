"""Push notification delivery to users' registered devices"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import PushToken
from ..push import PushResult, get_push_gateway

logger = logging.getLogger(__name__)


def deliver_push(
    db: Session, user_ids: list[str], title: str, body: str, data: Optional[dict] = None
) -> PushResult:
    """
    Send a push notification to every device of the given users.

    Tokens the gateway reports as invalid are deleted. Gateway errors propagate
    so callers that need delivery guarantees (the reminder sweep) can retry.
    """
    if not user_ids:
        return PushResult()

    tokens = [
        row[0] for row in db.query(PushToken.token).filter(PushToken.user_id.in_(user_ids)).all()
    ]
    if not tokens:
        logger.info(f"📭 No push tokens for users: {user_ids}")
        return PushResult()

    result = get_push_gateway().send(tokens, title, body, data)
    logger.info(
        f"📤 Push sent: success={result.success_count}, failed={result.failure_count}, users={len(user_ids)}"
    )

    if result.invalid_tokens:
        db.query(PushToken).filter(PushToken.token.in_(result.invalid_tokens)).delete(
            synchronize_session=False
        )
        db.commit()
        logger.info(f"🧹 Removed {len(result.invalid_tokens)} invalid push token(s)")

    return result


def send_push_to_users(
    db: Session, user_ids: list[str], title: str, body: str, data: Optional[dict] = None
) -> None:
    """Best-effort push; failures are logged and never raised"""
    try:
        deliver_push(db, user_ids, title, body, data)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to send push notification to {user_ids}: {str(e)}")


def send_push_to_user(
    db: Session, user_id: str, title: str, body: str, data: Optional[dict] = None
) -> None:
    send_push_to_users(db, [user_id], title, body, data)
