"""Firebase Cloud Messaging: realtime notifications on a per-user channel."""
import asyncio
import logging

import firebase_admin
from firebase_admin import credentials, messaging

from app.config import settings
from app.errors import DependencyError

logger = logging.getLogger(__name__)

_firebase_app = None

# FCM multicast limit
BATCH_SIZE = 500


def _get_firebase_app():
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    if not settings.firebase_credentials_path:
        logger.warning("FIREBASE_CREDENTIALS_PATH not set. FCM will be disabled.")
        return None

    try:
        cred = credentials.Certificate(settings.firebase_credentials_path)
        _firebase_app = firebase_admin.initialize_app(cred)
        return _firebase_app
    except Exception as e:
        logger.error(f"Failed to initialize Firebase app: {e}")
        return None


def _build_message(event: dict, tokens: list[str]) -> messaging.MulticastMessage:
    message = str(event.get("message", ""))
    return messaging.MulticastMessage(
        notification=messaging.Notification(
            title=event.get("title") or "Demo class update",
            body=message[:100] + "..." if len(message) > 100 else message,
        ),
        # FCM data values must be strings
        data={key: str(value) for key, value in event.items() if value is not None},
        tokens=tokens,
    )


class FcmRealtimeBus:
    """RealtimeBus that pushes to every registered device of the user."""

    def __init__(self, users):
        # needs push_tokens(user_id) -> list[str]; see MongoUserDirectory
        self._users = users

    async def publish(self, user_id: str, event: dict) -> None:
        app = _get_firebase_app()
        if not app:
            return

        tokens = await self._users.push_tokens(user_id)
        if not tokens:
            return

        for i in range(0, len(tokens), BATCH_SIZE):
            batch = tokens[i:i + BATCH_SIZE]
            try:
                response = await asyncio.to_thread(messaging.send_each_for_multicast, _build_message(event, batch))
            except Exception as e:
                logger.error(f"FCM send to user {user_id} failed: {e}")
                raise DependencyError("realtime_bus", str(e)) from e
            logger.info(
                f"Sent notification to {response.success_count} devices of user {user_id}. "
                f"Errors: {response.failure_count}"
            )
