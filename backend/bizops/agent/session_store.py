"""
In-memory session store, one entry per chat id.

The store itself is a plain map. Callers that read-modify-write a session
hold `lock(chat_id)` for the whole event so two overlapping events for the
same chat can't interleave; events for different chats never wait on each
other. A chat's lock lives only while someone holds a reference to it.

With `idle_minutes=0` sessions live until cleared. A positive value drops a
session on the first access after it has been idle that long, and at most
once per idle interval every other idle session is swept as well.
"""
import logging
import threading
import time
import weakref
from typing import Callable, Optional

from bizops.agent.conversation_state import Session

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, idle_minutes: int = 0, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = max(idle_minutes, 0) * 60
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._touched: dict[str, float] = {}
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._guard = threading.Lock()
        self._last_sweep = clock()

    @staticmethod
    def _key(chat_id) -> str:
        return str(chat_id)

    def lock(self, chat_id) -> threading.RLock:
        key = self._key(chat_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def _expired(self, key: str) -> bool:
        if not self.idle_seconds:
            return False
        touched = self._touched.get(key)
        return touched is not None and self._clock() - touched > self.idle_seconds

    def _sweep_if_due(self) -> None:
        if not self.idle_seconds:
            return
        with self._guard:
            due = self._clock() - self._last_sweep >= self.idle_seconds
            if due:
                self._last_sweep = self._clock()
        if due:
            self.purge_expired()

    def get(self, chat_id) -> Optional[Session]:
        self._sweep_if_due()
        key = self._key(chat_id)
        with self._guard:
            if key in self._sessions and self._expired(key):
                logger.info(f"[Session] chat_id={key} expired after idle timeout")
                self._sessions.pop(key, None)
                self._touched.pop(key, None)
            return self._sessions.get(key)

    def ensure(self, chat_id) -> Session:
        session = self.get(chat_id)
        if session is None:
            session = Session()
            self.set(chat_id, session)
        return session

    def set(self, chat_id, session: Session) -> None:
        key = self._key(chat_id)
        with self._guard:
            self._sessions[key] = session
            self._touched[key] = self._clock()

    def clear(self, chat_id) -> None:
        """Drop the session. Clearing a chat without one is fine."""
        key = self._key(chat_id)
        with self._guard:
            self._sessions.pop(key, None)
            self._touched.pop(key, None)

    def purge_expired(self) -> int:
        if not self.idle_seconds:
            return 0
        with self._guard:
            stale = [key for key in self._sessions if self._expired(key)]
            for key in stale:
                self._sessions.pop(key, None)
                self._touched.pop(key, None)
        if stale:
            logger.info(f"[Session] Purged {len(stale)} idle session(s)")
        return len(stale)

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    def __contains__(self, chat_id) -> bool:
        return self.get(chat_id) is not None

    def __len__(self) -> int:
        return len(self._sessions)
