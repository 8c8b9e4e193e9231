"""Post status state machine."""

from publishing.errors import InvalidTransitionError
from publishing.models.post import PostStatus

# Legal edges; anything absent (including same-status requests) is rejected.
VALID_TRANSITIONS: dict[PostStatus, frozenset[PostStatus]] = {
    PostStatus.DRAFT: frozenset(
        {PostStatus.PUBLISHED, PostStatus.SCHEDULED, PostStatus.ARCHIVED}
    ),
    PostStatus.PUBLISHED: frozenset({PostStatus.DRAFT, PostStatus.ARCHIVED}),
    PostStatus.SCHEDULED: frozenset(
        {PostStatus.DRAFT, PostStatus.PUBLISHED, PostStatus.ARCHIVED}
    ),
    PostStatus.ARCHIVED: frozenset({PostStatus.DRAFT}),
}

# Statuses each batch action is allowed to touch
BATCH_PUBLISHABLE = (PostStatus.DRAFT, PostStatus.SCHEDULED)
BATCH_ARCHIVABLE = (PostStatus.DRAFT, PostStatus.PUBLISHED, PostStatus.SCHEDULED)


def can_transition(current: PostStatus, target: PostStatus) -> bool:
    """Return True if ``current -> target`` is a legal edge."""
    return target in VALID_TRANSITIONS.get(current, frozenset())


def validate_transition(current: PostStatus, target: PostStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is legal."""
    if not can_transition(current, target):
        raise InvalidTransitionError(PostStatus(current).value, PostStatus(target).value)
