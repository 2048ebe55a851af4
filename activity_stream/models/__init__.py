from .activity import Activity, ActivityMeta
from .user import User, UserMeta

__all__ = [
    "Activity",
    "ActivityMeta",
    "User",
    "UserMeta",
]
