"""
Sandbox Session Store
✓ One live environment per session id
✓ Reuse inside the TTL window, replace (and dispose) after it
✓ Per-session locking so concurrent acquisitions never double-provision
✓ Expired sessions swept on every acquisition; locks dropped once released
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional, Any

from app.core.config import settings
from app.core.exceptions import SandboxError
from app.core.logging import log
from app.lib.monitoring import set_active_sandboxes

from .environment import EnvironmentFactory, E2BEnvironmentFactory, SandboxHandle


@dataclass
class SandboxSession:
    """A cached environment handle. The store owns the handle."""
    session_id: str
    handle: SandboxHandle
    created_at: float
    template_id: str

    def age(self, now: float) -> float:
        return now - self.created_at


class SessionStore:
    def __init__(
        self,
        factory: Optional[EnvironmentFactory] = None,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.factory = factory or E2BEnvironmentFactory()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.sandbox.session_ttl_seconds
        self._clock = clock

        self._sessions: Dict[str, SandboxSession] = {}
        # Key-scoped locks; unrelated sessions never wait on each other.
        # A lock lives only while someone holds or waits on it.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def acquire(self, session_id: str, template_id: str) -> SandboxHandle:
        """
        Return the live handle for session_id, creating one if there is none
        or the cached one has outlived the TTL window.

        Creation failures propagate to the caller.
        """
        await self.sweep_expired(exclude=session_id)

        async with self._session_lock(session_id):
            cached = self._sessions.get(session_id)
            now = self._clock()

            if cached and self._is_fresh(cached, now):
                log("SESSION", f"♻️ Reusing sandbox {cached.handle.sandbox_id} (age {cached.age(now):.0f}s)",
                    project_id=session_id)
                return cached.handle

            if cached:
                log("SESSION", f"⌛ Sandbox {cached.handle.sandbox_id} expired, replacing", project_id=session_id)
                await self._dispose(cached)
                self._sessions.pop(session_id, None)
                self._publish_count()

            handle = await self.factory.create(
                template_id,
                {"sessionId": session_id, "template": template_id},
                self.ttl_seconds,
            )
            self._sessions[session_id] = SandboxSession(
                session_id=session_id,
                handle=handle,
                created_at=self._clock(),
                template_id=template_id,
            )
            self._publish_count()
            log("SESSION", f"✓ Sandbox {handle.sandbox_id} bound to session", project_id=session_id)
            return handle

    async def destroy(self, session_id: str) -> bool:
        """
        Kill the session's environment and evict it.
        Returns False when there was nothing to destroy.
        """
        async with self._session_lock(session_id):
            cached = self._sessions.pop(session_id, None)
            if cached is None:
                return False
            self._publish_count()
            await self._dispose(cached)
            log("SESSION", f"🗑️ Session destroyed (sandbox {cached.handle.sandbox_id})", project_id=session_id)
            return True

    async def connect(self, sandbox_id: str) -> SandboxHandle:
        """
        Attach to an existing sandbox by id, bypassing the cache.
        Raises SandboxError when the sandbox cannot be reached.
        """
        try:
            return await self.factory.connect(sandbox_id)
        except Exception as e:
            raise SandboxError(sandbox_id, str(e)) from e

    def get(self, session_id: str) -> Optional[SandboxSession]:
        """Fresh cached session, or None. Never returns a stale entry."""
        cached = self._sessions.get(session_id)
        if cached and self._is_fresh(cached, self._clock()):
            return cached
        return None

    def list_sessions(self) -> List[Dict[str, Any]]:
        now = self._clock()
        return [
            {
                "session_id": s.session_id,
                "sandbox_id": s.handle.sandbox_id,
                "template_id": s.template_id,
                "age_seconds": round(s.age(now), 1),
                "expired": not self._is_fresh(s, now),
            }
            for s in self._sessions.values()
        ]

    async def sweep_expired(self, exclude: Optional[str] = None) -> int:
        """
        Dispose every expired session nobody is currently acquiring.
        Returns how many were evicted.
        """
        now = self._clock()
        stale = [
            sid for sid, s in self._sessions.items()
            if sid != exclude and sid not in self._lock_users and not self._is_fresh(s, now)
        ]
        evicted = 0
        for session_id in stale:
            async with self._session_lock(session_id):
                cached = self._sessions.get(session_id)
                if cached is None or self._is_fresh(cached, self._clock()):
                    continue
                self._sessions.pop(session_id)
                self._publish_count()
                await self._dispose(cached)
                evicted += 1
        if evicted:
            log("SESSION", f"🧹 Swept {evicted} expired sandbox(es)")
        return evicted

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def shutdown(self) -> None:
        """Destroy every cached environment (application shutdown)."""
        for session_id in list(self._sessions.keys()):
            await self.destroy(session_id)

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @asynccontextmanager
    async def _session_lock(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if self._lock_users[session_id] == 0:
                del self._lock_users[session_id]
                del self._locks[session_id]

    def _is_fresh(self, session: SandboxSession, now: float) -> bool:
        return session.age(now) < self.ttl_seconds

    async def _dispose(self, session: SandboxSession) -> None:
        # The entry is already gone from the caller's point of view, so a
        # failed kill is logged and swallowed.
        try:
            await session.handle.kill()
        except Exception as e:
            log("SESSION", f"⚠️ Failed to kill sandbox {session.handle.sandbox_id}: {e}",
                project_id=session.session_id)

    def _publish_count(self) -> None:
        set_active_sandboxes(len(self._sessions))
