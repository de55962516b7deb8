# Import all models here so Alembic and create_all() can detect them
from podhub.db.session import Base

# Import all models below
from podhub.modules.user_management.models.user import User
from podhub.modules.pods.models.pod import Pod, PodMember
from podhub.modules.rooms.models.room import Room, RoomMember, RoomJoinRequest
from podhub.modules.chats.models.chat import Chat, ChatParticipant
from podhub.modules.messages.models.message import Message
from podhub.modules.notifications.models.notification import Notification, PushSubscription
