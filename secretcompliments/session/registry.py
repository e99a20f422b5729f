"""One live session per user, closed again once it sits idle."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Optional

from secretcompliments.auth.identity import IdentitySession
from secretcompliments.session.context import SessionContext

if TYPE_CHECKING:
    from secretcompliments.session.side_channel import LastGroupStore

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Hands out the :class:`SessionContext` belonging to a browser session.

    A context that has not been attached for ``idle_ttl`` seconds is closed
    and forgotten on the next :meth:`attach`. A later request carrying the
    same user id resumes that identity in a fresh context.
    """

    def __init__(
        self,
        db_factory: Callable[[], Any],
        side_channel: LastGroupStore,
        enforce_membership: bool = True,
        runner: Optional[Callable[[Callable[[], None]], None]] = None,
        idle_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._db_factory = db_factory
        self._side_channel = side_channel
        self._enforce_membership = enforce_membership
        self._runner = runner
        self._idle_ttl = idle_ttl
        self._clock = clock
        self._contexts: dict[str, SessionContext] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._contexts)

    def attach(self, resume_uid: Optional[str] = None) -> SessionContext:
        """Return the live context for ``resume_uid``, starting one if needed.

        A context whose identity could not be resolved is returned unregistered
        so the next request tries again.
        """
        self.evict_idle()
        if resume_uid:
            with self._lock:
                existing = self._contexts.get(resume_uid)
                if existing is not None:
                    self._last_seen[resume_uid] = self._clock()
                    return existing

        context = SessionContext(
            self._db_factory(),
            IdentitySession(resume_uid),
            self._side_channel,
            enforce_membership=self._enforce_membership,
            runner=self._runner,
        )
        if not context.start():
            return context

        with self._lock:
            existing = self._contexts.setdefault(context.user_id, context)
            self._last_seen[context.user_id] = self._clock()
        if existing is not context:
            context.close()
        return existing

    def evict_idle(self) -> int:
        """Close every context idle for longer than the TTL."""
        if not self._idle_ttl:
            return 0
        cutoff = self._clock() - self._idle_ttl
        with self._lock:
            expired = [uid for uid, seen in self._last_seen.items() if seen < cutoff]
            contexts = [self._contexts.pop(uid) for uid in expired]
            for uid in expired:
                del self._last_seen[uid]
        for context in contexts:
            context.close()
        if contexts:
            logger.info(f"Closed {len(contexts)} idle sessions")
        return len(contexts)

    def close_all(self) -> None:
        """Close every session, idle or not."""
        with self._lock:
            contexts, self._contexts = list(self._contexts.values()), {}
            self._last_seen = {}
        for context in contexts:
            context.close()
        logger.info(f"Closed {len(contexts)} sessions")
