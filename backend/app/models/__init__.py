from .user import User
from .vault import Vault, VaultMember, MemberRole
from .media import Media, MediaType, Vote, Comment
from .note import Note
from .activity import VaultActivity, ActivityAction

__all__ = [
    "User",
    "Vault",
    "VaultMember",
    "MemberRole",
    "Media",
    "MediaType",
    "Vote",
    "Comment",
    "Note",
    "VaultActivity",
    "ActivityAction",
]
