from typing import Dict, List
from unittest.mock import AsyncMock

from podhub.core.security import create_access_token
from podhub.modules.user_management.models.user import User


class FakePushSender:
    """Records deliveries; ``failures`` maps an endpoint to the error it raises"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.icon = "/icons/icon.png"
        self.badge = None
        self.sent: List[tuple] = []
        self.failures: Dict[str, Exception] = {}

    def send(self, subscription_info, payload):
        self.sent.append((subscription_info["endpoint"], payload))
        error = self.failures.get(subscription_info["endpoint"])
        if error is not None:
            raise error


class FakeRealtime:
    def __init__(self, online=()):
        self.online = set(online)
        self.emit_to_user = AsyncMock()
        self.emit_to_chat = AsyncMock()

    def is_online(self, user_id):
        return user_id in self.online

    def is_watching(self, user_id, channel):
        return False

    @staticmethod
    def chat_channel(chat_id):
        return f"chat:{chat_id}"


def token_for(user: User) -> str:
    return create_access_token(user.id)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}
