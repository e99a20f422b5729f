"""Business logic for groups and their rosters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from secretcompliments.core.constants import (
    GROUP_CREATED_AT,
    GROUP_CREATOR_ID,
    GROUP_NAME,
    GROUPS_COLLECTION,
    MEMBER_JOINED_AT,
    MEMBER_USER_NAME,
    MEMBERS_COLLECTION,
)
from secretcompliments.core.types import Group, Member
from secretcompliments.errors import NotFoundError, ReadError, ValidationError, WriteError
from secretcompliments.utils import clean_text, timestamp_seconds

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


def group_from_snapshot(snapshot: Optional[DocumentSnapshot]) -> Optional[Group]:
    """Return the group held by a snapshot, or None if it does not exist."""
    if snapshot is None or not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    return {
        "id": snapshot.id,
        "name": data.get(GROUP_NAME) or "",
        "creatorId": data.get(GROUP_CREATOR_ID),
        "createdAt": data.get(GROUP_CREATED_AT),
    }


def roster_from_snapshots(docs: list[DocumentSnapshot]) -> list[Member]:
    """Build the roster in arrival order.

    Members whose ``joinedAt`` is still pending sort last; otherwise the
    store's order is kept.
    """
    members: list[Member] = []
    for doc in docs:
        if not doc.exists:
            continue
        data = doc.to_dict() or {}
        members.append(
            {
                "id": doc.id,
                "userName": data.get(MEMBER_USER_NAME) or "",
                "joinedAt": data.get(MEMBER_JOINED_AT),
            }
        )

    def arrival(member: Member) -> tuple[bool, float]:
        seconds = timestamp_seconds(member["joinedAt"])
        return (seconds == 0, seconds)

    return sorted(members, key=arrival)


class GroupService:
    """Service class for group operations."""

    @staticmethod
    def _group_ref(db: Client, group_id: str) -> DocumentReference:
        return db.collection(GROUPS_COLLECTION).document(group_id)

    @staticmethod
    def _member_ref(db: Client, group_id: str, user_id: str) -> DocumentReference:
        return (
            db.collection(GROUPS_COLLECTION)
            .document(group_id)
            .collection(MEMBERS_COLLECTION)
            .document(user_id)
        )

    @staticmethod
    def create_group(
        db: Client, name: Any, creator_id: str, creator_display_name: str
    ) -> str:
        """Create a group and its creator's membership in one batch.

        Both documents land in the same commit, so no reader ever sees the
        group without a member. Returns the new group id.
        """
        group_name = clean_text(name)
        if not group_name:
            raise ValidationError("Please enter a group name.")

        group_ref = db.collection(GROUPS_COLLECTION).document()
        member_ref = GroupService._member_ref(db, group_ref.id, creator_id)

        batch = db.batch()
        batch.set(
            group_ref,
            {
                GROUP_NAME: group_name,
                GROUP_CREATOR_ID: creator_id,
                GROUP_CREATED_AT: firestore.SERVER_TIMESTAMP,
            },
        )
        batch.set(
            member_ref,
            {
                MEMBER_USER_NAME: creator_display_name,
                MEMBER_JOINED_AT: firestore.SERVER_TIMESTAMP,
            },
        )
        try:
            batch.commit()
        except GoogleAPIError as e:
            logger.error(f"Error creating group {group_name!r}: {e}")
            raise WriteError("Could not create the group.") from e

        logger.info(f"Group {group_ref.id} created by {creator_id}")
        return group_ref.id

    @staticmethod
    def get_group(db: Client, group_id: str) -> Optional[Group]:
        """Point read of a group."""
        try:
            snapshot = GroupService._group_ref(db, group_id).get()
        except GoogleAPIError as e:
            logger.error(f"Error loading group {group_id}: {e}")
            raise ReadError() from e
        return group_from_snapshot(snapshot)

    @staticmethod
    def join_group(db: Client, group_id: Any, user_id: str, display_name: str) -> Group:
        """Write (or overwrite) the user's membership of an existing group.

        Joining again replaces the stored name snapshot and ``joinedAt``.
        """
        group_id = clean_text(group_id)
        if not group_id:
            raise ValidationError("Please enter a Group ID.")

        group = GroupService.get_group(db, group_id)
        if group is None:
            raise NotFoundError("No group found with that ID.")

        try:
            GroupService._member_ref(db, group_id, user_id).set(
                {
                    MEMBER_USER_NAME: display_name,
                    MEMBER_JOINED_AT: firestore.SERVER_TIMESTAMP,
                }
            )
        except GoogleAPIError as e:
            logger.error(f"Error joining group {group_id}: {e}")
            raise WriteError("Could not join the group.") from e
        return group

    @staticmethod
    def is_member(db: Client, group_id: str, user_id: str) -> bool:
        """Return True if the user holds a membership of the group."""
        try:
            snapshot = GroupService._member_ref(db, group_id, user_id).get()
        except GoogleAPIError as e:
            logger.error(f"Error checking membership of {user_id} in {group_id}: {e}")
            raise ReadError() from e
        return bool(snapshot.exists)

    @staticmethod
    def subscribe_group_meta(
        db: Client, group_id: str, callback: Callable[[Optional[Group]], None]
    ) -> Callable[[], None]:
        """Stream the group document; None means it is gone."""

        def on_snapshot(docs: list[DocumentSnapshot], changes: Any, read_time: Any):
            callback(group_from_snapshot(docs[0] if docs else None))

        try:
            watch = GroupService._group_ref(db, group_id).on_snapshot(on_snapshot)
        except GoogleAPIError as e:
            logger.error(f"Error subscribing to group {group_id}: {e}")
            raise ReadError() from e
        return watch.unsubscribe

    @staticmethod
    def subscribe_roster(
        db: Client, group_id: str, callback: Callable[[list[Member]], None]
    ) -> Callable[[], None]:
        """Stream the full roster on every change."""

        def on_snapshot(docs: list[DocumentSnapshot], changes: Any, read_time: Any):
            callback(roster_from_snapshots(docs))

        members = GroupService._group_ref(db, group_id).collection(MEMBERS_COLLECTION)
        try:
            watch = members.on_snapshot(on_snapshot)
        except GoogleAPIError as e:
            logger.error(f"Error subscribing to roster of {group_id}: {e}")
            raise ReadError() from e
        return watch.unsubscribe
