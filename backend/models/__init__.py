from models.user import User
from models.project import Project
from models.version import Version
from models.conversation import Conversation, ROLES

__all__ = ["User", "Project", "Version", "Conversation", "ROLES"]
