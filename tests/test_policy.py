import pytest

from backend.app.models import MemberRole
from backend.app.services.policy import POLICY, Action, can, is_content_owner


class Owned:
    def __init__(self, uploader_id=None, author_id=None):
        if uploader_id is not None:
            self.uploader_id = uploader_id
        if author_id is not None:
            self.author_id = author_id


def test_every_action_has_a_rule():
    assert set(POLICY) == set(Action)


@pytest.mark.parametrize("action", list(Action))
def test_admin_can_do_everything(action):
    assert can(MemberRole.ADMIN, action)


@pytest.mark.parametrize("action", [Action.VIEW, Action.COMMENT, Action.UPLOAD, Action.VOTE_DELETE, Action.LEAVE_VAULT])
def test_member_everyday_actions(action):
    assert can(MemberRole.MEMBER, action)


@pytest.mark.parametrize("action", [
    Action.APPROVE_MEDIA,
    Action.DELETE_ANY_CONTENT,
    Action.RESTORE_ANY_MEDIA,
    Action.PURGE_MEDIA,
    Action.CHANGE_MEMBER_ROLE,
    Action.REMOVE_MEMBER,
    Action.UPDATE_VAULT,
    Action.DELETE_VAULT,
    Action.MANAGE_INVITES,
])
def test_member_cannot_moderate(action):
    assert not can(MemberRole.MEMBER, action)
    assert not can(MemberRole.READ_ONLY, action)


def test_read_only_can_view_comment_and_vote_but_not_upload():
    assert can(MemberRole.READ_ONLY, Action.VIEW)
    assert can(MemberRole.READ_ONLY, Action.COMMENT)
    assert can(MemberRole.READ_ONLY, Action.VOTE_DELETE)
    assert not can(MemberRole.READ_ONLY, Action.UPLOAD)


def test_content_owner():
    assert is_content_owner(Owned(uploader_id=3), 3)
    assert is_content_owner(Owned(author_id=4), 4)
    assert not is_content_owner(Owned(uploader_id=3), 4)
    assert not is_content_owner(Owned(), 1)
