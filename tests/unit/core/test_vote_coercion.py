import pytest

from rolevote import Vote


@pytest.mark.parametrize(
    "raw, expected",
    [
        (True, Vote.ALLOW),
        (False, Vote.DENY),
        (None, Vote.ABSTAIN),
        (1, Vote.ABSTAIN),
        (0, Vote.ABSTAIN),
        ("true", Vote.ABSTAIN),
        ([], Vote.ABSTAIN),
        (Vote.ALLOW, Vote.ALLOW),
        (Vote.DENY, Vote.DENY),
        (Vote.ABSTAIN, Vote.ABSTAIN),
    ],
)
def test_coerce(raw, expected):
    assert Vote.coerce(raw) is expected


def test_definite():
    assert Vote.ALLOW.definite and Vote.DENY.definite
    assert not Vote.ABSTAIN.definite
