"""Ownership of live Firestore subscriptions.

Every live view a session holds is registered here under a key derived from the
current ``(user_id, group_id)`` pair. Changing the pair produces a new set of
desired keys; :meth:`SubscriptionManager.reconcile` cancels what is no longer
wanted and installs what is missing. Each installation gets a fresh generation
number, and callbacks carry the generation they were created with, so an update
that was already in flight when its subscription was replaced is recognised and
dropped instead of leaking into the new view.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Hashable, Optional

from secretcompliments.errors import ReadError

logger = logging.getLogger(__name__)

Disposer = Callable[[], None]
Factory = Callable[[int], Disposer]
Runner = Callable[[Callable[[], None]], None]

PROFILE = "profile"
GROUP_META = "group"
ROSTER = "roster"
RECEIVED = "received"
SENT = "sent"


def desired_subscriptions(
    user_id: Optional[str], group_id: Optional[str]
) -> list[tuple[str, ...]]:
    """Map the session's identity and group to the subscriptions it needs."""
    if not user_id:
        return []
    keys: list[tuple[str, ...]] = [(PROFILE, user_id)]
    if group_id:
        keys += [
            (GROUP_META, group_id),
            (ROSTER, group_id),
            (RECEIVED, user_id, group_id),
            (SENT, user_id, group_id),
        ]
    return keys


def run_in_background(task: Callable[[], None]) -> None:
    """Run a disposer on its own thread.

    A Firestore watch cannot be stopped from the thread delivering its
    callbacks, which is exactly where a group-deleted update arrives.
    """
    thread = threading.Thread(target=task, daemon=True)
    thread.start()


class Subscription:
    """A single live handle."""

    def __init__(self, key: Hashable, generation: int) -> None:
        self.key = key
        self.generation = generation
        self.disposer: Optional[Disposer] = None

    def __repr__(self) -> str:
        return f"Subscription({self.key!r}, generation={self.generation})"


class SubscriptionManager:
    """Keeps the active subscriptions equal to the desired ones."""

    def __init__(self, runner: Optional[Runner] = None) -> None:
        self._runner = runner or run_in_background
        self._active: dict[Hashable, Subscription] = {}
        self._counter = itertools.count(1)
        self._epoch = 0
        self._lock = threading.RLock()

    @property
    def active_keys(self) -> set[Hashable]:
        with self._lock:
            return set(self._active)

    def is_current(self, key: Hashable, generation: int) -> bool:
        """Return True if ``generation`` is the live installation of ``key``."""
        with self._lock:
            subscription = self._active.get(key)
            return subscription is not None and subscription.generation == generation

    def reconcile(self, factories: dict[Hashable, Factory]) -> list[Hashable]:
        """Cancel stale keys, then install the missing ones.

        The generation is registered before the factory runs because a store
        may deliver the initial snapshot synchronously from inside it. Such a
        delivery can itself trigger a nested reconcile; when that happens the
        nested call wins and this one stops installing.

        A key whose store read fails is skipped so the others still attach.
        The skipped keys are returned; they stay missing from
        :attr:`active_keys` and the next reconcile tries them again.
        """
        failed: list[Hashable] = []
        with self._lock:
            self._epoch += 1
            epoch = self._epoch
            for key in [k for k in self._active if k not in factories]:
                self._cancel(key)
            for key, factory in factories.items():
                if self._epoch != epoch:
                    break
                if key in self._active:
                    continue
                subscription = Subscription(key, next(self._counter))
                self._active[key] = subscription
                try:
                    disposer = factory(subscription.generation)
                except ReadError:
                    if self._active.get(key) is subscription:
                        del self._active[key]
                    logger.warning("Could not install %r; will retry", subscription)
                    failed.append(key)
                    continue
                except Exception:
                    if self._active.get(key) is subscription:
                        del self._active[key]
                    raise
                if self._active.get(key) is not subscription:
                    self._runner(disposer)
                    continue
                subscription.disposer = disposer
                logger.debug("Installed %r", subscription)
        return failed

    def close(self) -> None:
        """Cancel everything."""
        with self._lock:
            for key in list(self._active):
                self._cancel(key)

    def _cancel(self, key: Hashable) -> None:
        subscription = self._active.pop(key)
        logger.debug("Cancelling %r", subscription)
        disposer = subscription.disposer
        if disposer is not None:
            self._runner(disposer)
