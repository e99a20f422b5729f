"""Anonymous identity backed by Firebase Authentication."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from firebase_admin import auth
from firebase_admin.auth import UserNotFoundError
from firebase_admin.exceptions import FirebaseError

logger = logging.getLogger(__name__)


class IdentitySession:
    """Produces one stable user id for the lifetime of a session.

    The session starts unresolved and becomes ready exactly once. A remembered
    uid is resumed if Firebase still knows it; otherwise a fresh anonymous
    account is created. If Firebase cannot be reached the session simply stays
    unresolved until :meth:`start` is called again.
    """

    def __init__(self, resume_uid: Optional[str] = None) -> None:
        self._resume_uid = resume_uid
        self._uid: Optional[str] = None
        self._listeners: list[Callable[[str], None]] = []
        self._lock = threading.Lock()

    @property
    def uid(self) -> Optional[str]:
        return self._uid

    @property
    def is_ready(self) -> bool:
        return self._uid is not None

    def on_ready(self, callback: Callable[[str], None]) -> None:
        """Call ``callback(uid)`` once the session is ready (now, if it is)."""
        with self._lock:
            uid = self._uid
            if uid is None:
                self._listeners.append(callback)
                return
        callback(uid)

    def start(self) -> bool:
        """Try to resolve the user id. Returns True once ready."""
        if self.is_ready:
            return True
        try:
            uid = self._resolve()
        except FirebaseError as e:
            logger.warning(f"Identity provider unavailable: {e}")
            return False
        self._mark_ready(uid)
        return True

    def _resolve(self) -> str:
        if self._resume_uid:
            try:
                user = auth.get_user(self._resume_uid)
                logger.info(f"Resumed session for {user.uid}")
                return user.uid
            except UserNotFoundError:
                logger.info(f"Stored user {self._resume_uid} no longer exists")
        user = auth.create_user()
        logger.info(f"Created anonymous user {user.uid}")
        return user.uid

    def _mark_ready(self, uid: str) -> None:
        with self._lock:
            if self._uid is not None:
                return
            self._uid = uid
            listeners, self._listeners = self._listeners, []
        for callback in listeners:
            callback(uid)
