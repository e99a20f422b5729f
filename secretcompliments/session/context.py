"""The per-user session: identity, profile, current group and live views."""

from __future__ import annotations

import enum
import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Hashable, Optional

from secretcompliments.compliment.services import ComplimentService
from secretcompliments.core import subscriptions
from secretcompliments.core.constants import (
    GROUP_DELETED_MESSAGE,
    NOTICE_ERROR,
    NOTICE_SUCCESS,
    UNKNOWN_MEMBER_NAME,
)
from secretcompliments.core.subscriptions import SubscriptionManager
from secretcompliments.core.types import Compliment, Group, Member, Notice, Profile
from secretcompliments.errors import IdentityNotReadyError, ValidationError
from secretcompliments.group.services import GroupService
from secretcompliments.profile.services import ProfileService
from secretcompliments.utils import clean_text, timestamp_seconds

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from secretcompliments.auth.identity import IdentitySession
    from secretcompliments.session.side_channel import LastGroupStore

logger = logging.getLogger(__name__)

MAX_PENDING_NOTICES = 50


class SessionState(str, enum.Enum):
    """Where a session stands."""

    UNAUTHENTICATED = "unauthenticated"
    AUTH_READY_NO_PROFILE = "auth_ready_no_profile"
    AUTH_READY_HAS_PROFILE = "auth_ready_has_profile"
    NO_GROUP_SELECTED = "no_group_selected"
    IN_GROUP = "in_group"


class SessionContext:
    """Composes identity, profile, group and compliment views for one user.

    All state is a projection of the latest snapshots pushed by Firestore. The
    live subscriptions are owned by a :class:`SubscriptionManager` and are
    re-derived from ``(user_id, group_id)`` whenever either changes; updates
    from a subscription that has since been replaced are dropped.
    """

    def __init__(
        self,
        db: Client,
        identity: IdentitySession,
        side_channel: LastGroupStore,
        enforce_membership: bool = True,
        runner: Optional[Callable[[Callable[[], None]], None]] = None,
    ) -> None:
        self._db = db
        self._identity = identity
        self._side_channel = side_channel
        self._enforce_membership = enforce_membership
        self._subscriptions = SubscriptionManager(runner)
        self._lock = threading.RLock()
        self._state = SessionState.UNAUTHENTICATED

        self._profile_loaded = False
        self._display_name = ""
        self._group_id: Optional[str] = None
        self._group: Optional[Group] = None
        self._members: list[Member] = []
        self._received: list[Compliment] = []
        self._sent: list[Compliment] = []
        self._notices: deque[Notice] = deque(maxlen=MAX_PENDING_NOTICES)

    # --- Lifecycle ---

    def start(self) -> bool:
        """Resolve the identity; on readiness the live views attach."""
        self._identity.on_ready(self._on_identity_ready)
        return self._identity.start()

    def close(self) -> None:
        """Cancel every live view this session holds."""
        with self._lock:
            self._subscriptions.close()

    def _on_identity_ready(self, user_id: str) -> None:
        with self._lock:
            self._group_id = self._side_channel.get(user_id)
            if self._group_id:
                logger.info(f"Restoring {user_id} into group {self._group_id}")
            self._reconcile()

    # --- Read side ---

    @property
    def user_id(self) -> Optional[str]:
        return self._identity.uid

    @property
    def group_id(self) -> Optional[str]:
        return self._group_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def members(self) -> list[Member]:
        with self._lock:
            return list(self._members)

    @property
    def received(self) -> list[Compliment]:
        with self._lock:
            return list(self._received)

    @property
    def sent(self) -> list[Compliment]:
        with self._lock:
            return list(self._sent)

    @property
    def active_subscriptions(self) -> set[Hashable]:
        return self._subscriptions.active_keys

    def drain_notices(self) -> list[Notice]:
        """Return the pending notices and clear them."""
        with self._lock:
            notices = list(self._notices)
            self._notices.clear()
            return notices

    def snapshot(self) -> dict[str, Any]:
        """Everything a client needs to render the session."""
        with self._lock:
            self._retry_missing()
            names = {m["id"]: m["userName"] for m in self._members}
            group = None
            if self._group_id:
                group = {
                    "id": self._group_id,
                    "name": self._group["name"] if self._group else "",
                }
            return {
                "state": self._state.value,
                "userId": self.user_id,
                "displayName": self._display_name,
                "group": group,
                "members": [
                    {"id": m["id"], "userName": m["userName"]} for m in self._members
                ],
                "recipients": [
                    {"id": m["id"], "userName": m["userName"]}
                    for m in self._members
                    if m["id"] != self.user_id
                ],
                "received": [
                    {
                        "id": c["id"],
                        "message": c["message"],
                        "timestamp": timestamp_seconds(c["timestamp"]) or None,
                    }
                    for c in self._received
                ],
                "sent": [
                    {
                        "id": c["id"],
                        "message": c["message"],
                        "receiverId": c["receiverId"],
                        "receiverName": names.get(c["receiverId"], UNKNOWN_MEMBER_NAME),
                        "timestamp": timestamp_seconds(c["timestamp"]) or None,
                    }
                    for c in self._sent
                ],
            }

    # --- Operations ---

    def save_display_name(self, name: Any) -> str:
        user_id = self._require_user()
        display_name = ProfileService.save_display_name(self._db, user_id, name)
        with self._lock:
            # Optimistic echo; the profile subscription confirms or corrects it.
            self._profile_loaded = True
            self._display_name = display_name
            self._notify("Name updated successfully!")
            self._refresh_state()
        return display_name

    def create_group(self, name: Any) -> str:
        user_id = self._require_user()
        if not clean_text(name):
            raise ValidationError("Please enter a group name.")
        display_name = self._require_display_name()
        group_id = GroupService.create_group(self._db, name, user_id, display_name)
        with self._lock:
            self._select_group(group_id)
            self._notify(f'Group "{clean_text(name)}" created!')
        return group_id

    def join_group(self, group_id: Any) -> Group:
        user_id = self._require_user()
        if not clean_text(group_id):
            raise ValidationError("Please enter a Group ID.")
        display_name = self._require_display_name()
        group = GroupService.join_group(self._db, group_id, user_id, display_name)
        with self._lock:
            self._select_group(group["id"])
            self._group = group
            self._notify(f'Successfully joined "{group["name"]}"!')
        return group

    def leave_group(self) -> None:
        self._require_user()
        with self._lock:
            self._leave("You have left the group.", NOTICE_SUCCESS)

    def send_compliment(self, receiver_id: Any, message: Any) -> str:
        user_id = self._require_user()
        group_id = self._group_id
        if not group_id:
            raise ValidationError("Join a group first.")
        compliment_id = ComplimentService.send_compliment(
            self._db,
            user_id,
            receiver_id,
            group_id,
            message,
            enforce_membership=self._enforce_membership,
        )
        with self._lock:
            self._notify("Secret compliment sent!")
        return compliment_id

    # --- Internals ---

    def _require_user(self) -> str:
        user_id = self.user_id
        if user_id is None:
            raise IdentityNotReadyError()
        return user_id

    def _require_display_name(self) -> str:
        with self._lock:
            display_name = self._display_name
        if not display_name:
            raise ValidationError("Please set your display name first.")
        return display_name

    def _notify(self, message: str, kind: str = NOTICE_SUCCESS) -> None:
        self._notices.append({"message": message, "type": kind})

    def _select_group(self, group_id: str) -> None:
        if group_id != self._group_id:
            self._clear_group_views()
            self._group_id = group_id
        self._side_channel.remember(self._require_user(), group_id)
        self._reconcile()

    def _leave(self, message: str, kind: str) -> None:
        if self._group_id is None:
            return
        logger.info(f"{self.user_id} leaving group {self._group_id}")
        self._group_id = None
        self._clear_group_views()
        self._side_channel.forget(self._require_user())
        self._reconcile()
        self._notify(message, kind)

    def _clear_group_views(self) -> None:
        self._group = None
        self._members = []
        self._received = []
        self._sent = []

    def _reconcile(self) -> None:
        keys = subscriptions.desired_subscriptions(self.user_id, self._group_id)
        try:
            failed = self._subscriptions.reconcile(
                {key: self._factory(key) for key in keys}
            )
        finally:
            self._refresh_state()
        if failed:
            logger.warning(f"Session {self.user_id}: views not attached {failed!r}")

    def _retry_missing(self) -> None:
        keys = subscriptions.desired_subscriptions(self.user_id, self._group_id)
        if set(keys) - self._subscriptions.active_keys:
            self._reconcile()

    def _factory(self, key: tuple[str, ...]) -> Callable[[int], Callable[[], None]]:
        kind = key[0]

        def install(generation: int) -> Callable[[], None]:
            if kind == subscriptions.PROFILE:
                return ProfileService.subscribe(
                    self._db, key[1], self._guard(key, generation, self._on_profile)
                )
            if kind == subscriptions.GROUP_META:
                return GroupService.subscribe_group_meta(
                    self._db, key[1], self._guard(key, generation, self._on_group_meta)
                )
            if kind == subscriptions.ROSTER:
                return GroupService.subscribe_roster(
                    self._db, key[1], self._guard(key, generation, self._on_roster)
                )
            if kind == subscriptions.RECEIVED:
                return ComplimentService.subscribe_received(
                    self._db, key[1], key[2], self._guard(key, generation, self._on_received)
                )
            if kind == subscriptions.SENT:
                return ComplimentService.subscribe_sent(
                    self._db, key[1], key[2], self._guard(key, generation, self._on_sent)
                )
            raise ValueError(f"Unknown subscription {key!r}")

        return install

    def _guard(
        self, key: Hashable, generation: int, handler: Callable[[Any], None]
    ) -> Callable[[Any], None]:
        def deliver(value: Any) -> None:
            with self._lock:
                if not self._subscriptions.is_current(key, generation):
                    logger.debug(f"Dropping stale update for {key!r}")
                    return
                handler(value)

        return deliver

    def _on_profile(self, profile: Optional[Profile]) -> None:
        self._profile_loaded = True
        self._display_name = profile["displayName"] if profile else ""
        self._refresh_state()

    def _on_group_meta(self, group: Optional[Group]) -> None:
        if group is None:
            logger.info(f"Group {self._group_id} is gone")
            self._leave(GROUP_DELETED_MESSAGE, NOTICE_ERROR)
            return
        self._group = group

    def _on_roster(self, members: list[Member]) -> None:
        self._members = members

    def _on_received(self, compliments: list[Compliment]) -> None:
        self._received = compliments

    def _on_sent(self, compliments: list[Compliment]) -> None:
        self._sent = compliments

    def _compute_state(self) -> SessionState:
        if self.user_id is None or not self._profile_loaded:
            return SessionState.UNAUTHENTICATED
        if not self._display_name:
            return SessionState.AUTH_READY_NO_PROFILE
        if self._group_id:
            return SessionState.IN_GROUP
        return SessionState.NO_GROUP_SELECTED

    def _refresh_state(self) -> None:
        new_state = self._compute_state()
        if new_state == self._state:
            return
        if self._state in (
            SessionState.UNAUTHENTICATED,
            SessionState.AUTH_READY_NO_PROFILE,
        ) and new_state in (SessionState.IN_GROUP, SessionState.NO_GROUP_SELECTED):
            self._transition(SessionState.AUTH_READY_HAS_PROFILE)
        self._transition(new_state)

    def _transition(self, new_state: SessionState) -> None:
        logger.info(f"Session {self.user_id}: {self._state.value} -> {new_state.value}")
        self._state = new_state
