"""Service for display-name profiles."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from google.api_core.exceptions import GoogleAPIError

from secretcompliments.core.constants import PROFILE_DISPLAY_NAME, PROFILES_COLLECTION
from secretcompliments.core.types import Profile
from secretcompliments.errors import ReadError, ValidationError, WriteError
from secretcompliments.utils import clean_text

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def profile_from_snapshot(snapshot: Optional[DocumentSnapshot]) -> Optional[Profile]:
    """Return the profile held by a snapshot, or None if there is no document.

    A document without a name is still a profile; its name is just empty.
    """
    if snapshot is None or not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    return {"displayName": data.get(PROFILE_DISPLAY_NAME) or ""}


class ProfileService:
    """Service class for profile operations."""

    @staticmethod
    def save_display_name(db: Client, user_id: str, name: Any) -> str:
        """Replace the user's profile with the trimmed name and return it."""
        display_name = clean_text(name)
        if not display_name:
            raise ValidationError("Please enter a name.")
        try:
            db.collection(PROFILES_COLLECTION).document(user_id).set(
                {PROFILE_DISPLAY_NAME: display_name}
            )
        except GoogleAPIError as e:
            logger.error(f"Error saving name for {user_id}: {e}")
            raise WriteError("Could not save your name.") from e
        return display_name

    @staticmethod
    def get_profile(db: Client, user_id: str) -> Optional[Profile]:
        """Fetch a profile once."""
        try:
            snapshot = db.collection(PROFILES_COLLECTION).document(user_id).get()
        except GoogleAPIError as e:
            logger.error(f"Error loading profile {user_id}: {e}")
            raise ReadError() from e
        return profile_from_snapshot(snapshot)

    @staticmethod
    def subscribe(
        db: Client, user_id: str, callback: Callable[[Optional[Profile]], None]
    ) -> Callable[[], None]:
        """Stream the profile to ``callback``; returns the disposer."""

        def on_snapshot(docs: list[DocumentSnapshot], changes: Any, read_time: Any):
            callback(profile_from_snapshot(docs[0] if docs else None))

        ref = db.collection(PROFILES_COLLECTION).document(user_id)
        try:
            watch = ref.on_snapshot(on_snapshot)
        except GoogleAPIError as e:
            logger.error(f"Error subscribing to profile {user_id}: {e}")
            raise ReadError() from e
        return watch.unsubscribe
