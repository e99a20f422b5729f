"""Core data types for the secret compliments application."""

from typing import Any, Optional, TypedDict


class Profile(TypedDict):
    """A 'profiles' document."""

    displayName: str


class Group(TypedDict):
    """A 'groups' document with its id attached."""

    id: str
    name: str
    creatorId: Optional[str]
    createdAt: Any


class Member(TypedDict):
    """A 'groups/{id}/members' document; ``id`` is the member's user id."""

    id: str
    userName: str
    joinedAt: Any


class Compliment(TypedDict):
    """A 'compliments' document with its id attached."""

    id: str
    senderId: str
    receiverId: str
    groupId: str
    message: str
    timestamp: Any


class Notice(TypedDict):
    """A transient message shown to the user."""

    message: str
    type: str
