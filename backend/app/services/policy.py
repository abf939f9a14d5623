# backend/app/services/policy.py
"""
Role x action authorization table.

Kept as plain data plus one pure function so the matrix can be read
and tested without a database. Ownership ("delete own content") and the
last-admin rule for leaving are checked by the services, not here.
"""
import enum

from backend.app.models.vault import MemberRole


class Action(str, enum.Enum):
    VIEW = "view"
    COMMENT = "comment"
    UPLOAD = "upload"
    APPROVE_MEDIA = "approve_media"
    DELETE_ANY_CONTENT = "delete_any_content"
    VOTE_DELETE = "vote_delete"
    RESTORE_ANY_MEDIA = "restore_any_media"
    PURGE_MEDIA = "purge_media"
    CHANGE_MEMBER_ROLE = "change_member_role"
    REMOVE_MEMBER = "remove_member"
    UPDATE_VAULT = "update_vault"
    DELETE_VAULT = "delete_vault"
    MANAGE_INVITES = "manage_invites"
    LEAVE_VAULT = "leave_vault"


_EVERYONE = frozenset(MemberRole)
_ADMIN_ONLY = frozenset({MemberRole.ADMIN})

POLICY = {
    Action.VIEW: _EVERYONE,
    Action.COMMENT: _EVERYONE,
    Action.UPLOAD: frozenset({MemberRole.ADMIN, MemberRole.MEMBER}),
    Action.APPROVE_MEDIA: _ADMIN_ONLY,
    Action.DELETE_ANY_CONTENT: _ADMIN_ONLY,
    Action.VOTE_DELETE: _EVERYONE,
    Action.RESTORE_ANY_MEDIA: _ADMIN_ONLY,
    Action.PURGE_MEDIA: _ADMIN_ONLY,
    Action.CHANGE_MEMBER_ROLE: _ADMIN_ONLY,
    Action.REMOVE_MEMBER: _ADMIN_ONLY,
    Action.UPDATE_VAULT: _ADMIN_ONLY,
    Action.DELETE_VAULT: _ADMIN_ONLY,
    Action.MANAGE_INVITES: _ADMIN_ONLY,
    # Sole admins are stopped by the last-admin check in membership.leave_vault
    Action.LEAVE_VAULT: _EVERYONE,
}


def can(role: MemberRole, action: Action) -> bool:
    return role in POLICY[action]


def is_content_owner(content, user_id: int) -> bool:
    """True for the uploader of a media item or the author of a note/comment."""
    owner_id = getattr(content, "uploader_id", None)
    if owner_id is None:
        owner_id = getattr(content, "author_id", None)
    return owner_id is not None and owner_id == user_id
