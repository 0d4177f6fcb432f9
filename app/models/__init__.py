
from .base_model import Base
from .user_model import User, UserRole
from .task_model import Task, TaskStatus, TaskPriority
from .message_model import Message, MessageType
from .chat_group_model import ChatGroup, ChatGroupMember, GroupMessage
from .announcement_model import Announcement, AnnouncementView, CourseInterest
from .notification_model import Notification, NotificationType
from .token_model import PasswordResetToken
