"""Service layer for the compliments ledger."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from secretcompliments.core.constants import (
    COMPLIMENT_GROUP_ID,
    COMPLIMENT_MESSAGE,
    COMPLIMENT_RECEIVER_ID,
    COMPLIMENT_SENDER_ID,
    COMPLIMENT_TIMESTAMP,
    COMPLIMENTS_COLLECTION,
)
from secretcompliments.core.types import Compliment
from secretcompliments.errors import MembershipError, ReadError, ValidationError, WriteError
from secretcompliments.group.services import GroupService
from secretcompliments.utils import clean_text, timestamp_seconds

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def newest_first(compliments: list[Compliment]) -> list[Compliment]:
    """Sort by descending timestamp; equal or pending timestamps keep their order."""
    return sorted(
        compliments,
        key=lambda c: timestamp_seconds(c["timestamp"]),
        reverse=True,
    )


def compliments_from_snapshots(docs: list[DocumentSnapshot]) -> list[Compliment]:
    compliments: list[Compliment] = []
    for doc in docs:
        if not doc.exists:
            continue
        data = doc.to_dict() or {}
        compliments.append(
            {
                "id": doc.id,
                "senderId": data.get(COMPLIMENT_SENDER_ID) or "",
                "receiverId": data.get(COMPLIMENT_RECEIVER_ID) or "",
                "groupId": data.get(COMPLIMENT_GROUP_ID) or "",
                "message": data.get(COMPLIMENT_MESSAGE) or "",
                "timestamp": data.get(COMPLIMENT_TIMESTAMP),
            }
        )
    return newest_first(compliments)


class ComplimentService:
    """Service class for sending and watching compliments."""

    @staticmethod
    def send_compliment(
        db: Client,
        sender_id: str,
        receiver_id: Any,
        group_id: str,
        message: Any,
        enforce_membership: bool = True,
    ) -> str:
        """Append one compliment and return its id.

        With ``enforce_membership`` the sender and receiver must both be
        members of the group and must be different people.
        """
        receiver_id = clean_text(receiver_id)
        text = clean_text(message)
        if not receiver_id or not text:
            raise ValidationError("Please select a member and write a message.")

        if enforce_membership:
            if receiver_id == sender_id:
                raise ValidationError("You can't send a compliment to yourself.")
            if not GroupService.is_member(db, group_id, sender_id):
                raise MembershipError("You are not a member of this group.")
            if not GroupService.is_member(db, group_id, receiver_id):
                raise MembershipError("That person is not a member of this group.")

        try:
            _, ref = db.collection(COMPLIMENTS_COLLECTION).add(
                {
                    COMPLIMENT_SENDER_ID: sender_id,
                    COMPLIMENT_RECEIVER_ID: receiver_id,
                    COMPLIMENT_GROUP_ID: group_id,
                    COMPLIMENT_MESSAGE: text,
                    COMPLIMENT_TIMESTAMP: firestore.SERVER_TIMESTAMP,
                }
            )
        except GoogleAPIError as e:
            logger.error(f"Error sending compliment in {group_id}: {e}")
            raise WriteError("Could not send your compliment.") from e
        return ref.id

    @staticmethod
    def _subscribe(
        db: Client,
        user_field: str,
        user_id: str,
        group_id: str,
        callback: Callable[[list[Compliment]], None],
    ) -> Callable[[], None]:
        def on_snapshot(docs: list[DocumentSnapshot], changes: Any, read_time: Any):
            callback(compliments_from_snapshots(docs))

        query = (
            db.collection(COMPLIMENTS_COLLECTION)
            .where(filter=firestore.FieldFilter(user_field, "==", user_id))
            .where(filter=firestore.FieldFilter(COMPLIMENT_GROUP_ID, "==", group_id))
        )
        try:
            watch = query.on_snapshot(on_snapshot)
        except GoogleAPIError as e:
            logger.error(f"Error subscribing to compliments in {group_id}: {e}")
            raise ReadError() from e
        return watch.unsubscribe

    @staticmethod
    def subscribe_received(
        db: Client,
        user_id: str,
        group_id: str,
        callback: Callable[[list[Compliment]], None],
    ) -> Callable[[], None]:
        """Stream compliments sent to the user in the group, newest first."""
        return ComplimentService._subscribe(
            db, COMPLIMENT_RECEIVER_ID, user_id, group_id, callback
        )

    @staticmethod
    def subscribe_sent(
        db: Client,
        user_id: str,
        group_id: str,
        callback: Callable[[list[Compliment]], None],
    ) -> Callable[[], None]:
        """Stream compliments the user sent in the group, newest first."""
        return ComplimentService._subscribe(
            db, COMPLIMENT_SENDER_ID, user_id, group_id, callback
        )
