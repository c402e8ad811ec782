"""
Session management on Redis.

Keys:
    session:<id>           JSON session record, expires after the absolute TTL
    user_sessions:<userId> set of the user's session ids

Two independent expiry clocks apply to a session:
    - the store TTL (SessionPolicy.ttl_seconds), reset whenever the session
      is read through get_session or extended;
    - the inactivity timeout (SessionPolicy.inactivity_seconds), measured from
      last_activity and enforced by the access-control layer via is_inactive.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel
from redis import Redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import SessionStoreError

logger = logging.getLogger(__name__)


class SessionData(BaseModel):
    user_id: int
    email: str
    role: str
    first_name: str = ""
    last_name: str = ""
    login_time: float
    last_activity: float
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_id: Optional[str] = None


@dataclass
class SessionPolicy:
    ttl_seconds: int
    inactivity_seconds: int
    max_per_user: int

    @classmethod
    def from_settings(cls) -> "SessionPolicy":
        return cls(
            ttl_seconds=settings.session.ttl_seconds,
            inactivity_seconds=settings.session.inactivity_seconds,
            max_per_user=settings.session.max_per_user,
        )


class SessionService:
    SESSION_PREFIX = "session:"
    USER_SESSIONS_PREFIX = "user_sessions:"

    def __init__(
        self,
        redis_client: Redis,
        policy: Optional[SessionPolicy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis_client
        self.policy = policy or SessionPolicy.from_settings()
        self.clock = clock

    def _session_key(self, session_id: str) -> str:
        return f"{self.SESSION_PREFIX}{session_id}"

    def _index_key(self, user_id: int) -> str:
        return f"{self.USER_SESSIONS_PREFIX}{user_id}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_session(
        self,
        user_id: int,
        email: str,
        role: str,
        first_name: str = "",
        last_name: str = "",
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> Tuple[str, SessionData]:
        session_id = str(uuid.uuid4())
        now = self.clock()
        data = SessionData(
            user_id=user_id,
            email=email,
            role=role,
            first_name=first_name,
            last_name=last_name,
            login_time=now,
            last_activity=now,
            ip_address=ip_address,
            user_agent=user_agent,
            device_id=device_id,
        )

        try:
            self._cleanup_expired(user_id)
            existing = self.list_user_sessions(user_id)
            # Make room for the new session, oldest login first
            existing.sort(key=lambda item: item[1].login_time)
            while len(existing) >= self.policy.max_per_user:
                oldest_id, _ = existing.pop(0)
                self.delete_session(oldest_id)
                logger.info("Evicted oldest session", extra={"user_id": user_id, "session_id": oldest_id})

            pipe = self.redis.pipeline()
            pipe.setex(self._session_key(session_id), self.policy.ttl_seconds, data.model_dump_json())
            pipe.sadd(self._index_key(user_id), session_id)
            pipe.expire(self._index_key(user_id), self.policy.ttl_seconds)
            pipe.execute()
        except RedisError as e:
            logger.error(f"Error creating session: {e}", extra={"user_id": user_id})
            raise SessionStoreError("Failed to create session") from e

        logger.info(f"Session created for user {user_id}", extra={"session_id": session_id})
        return session_id, data

    def peek_session(self, session_id: str) -> Optional[SessionData]:
        """Read a session without touching last_activity or its TTL."""
        try:
            raw = self.redis.get(self._session_key(session_id))
        except RedisError as e:
            logger.error(f"Error reading session: {e}")
            return None
        if not raw:
            return None
        return SessionData.model_validate_json(raw)

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """Read a session, stamping last_activity and restarting its TTL."""
        session = self.peek_session(session_id)
        if session is None:
            return None
        session.last_activity = self.clock()
        try:
            self.redis.setex(self._session_key(session_id), self.policy.ttl_seconds, session.model_dump_json())
        except RedisError as e:
            logger.error(f"Error refreshing session: {e}")
            return None
        return session

    def update_session(self, session_id: str, **updates) -> Optional[SessionData]:
        session = self.peek_session(session_id)
        if session is None:
            return None
        session = session.model_copy(update=updates)
        try:
            self.redis.setex(self._session_key(session_id), self.policy.ttl_seconds, session.model_dump_json())
        except RedisError as e:
            logger.error(f"Error updating session: {e}")
            raise SessionStoreError("Failed to update session") from e
        return session

    def extend_session(self, session_id: str) -> bool:
        try:
            return bool(self.redis.expire(self._session_key(session_id), self.policy.ttl_seconds))
        except RedisError as e:
            logger.error(f"Error extending session: {e}")
            return False

    def delete_session(self, session_id: str) -> bool:
        session = self.peek_session(session_id)
        if session is None:
            return False
        try:
            pipe = self.redis.pipeline()
            pipe.delete(self._session_key(session_id))
            pipe.srem(self._index_key(session.user_id), session_id)
            pipe.execute()
        except RedisError as e:
            logger.error(f"Error deleting session: {e}")
            raise SessionStoreError("Failed to delete session") from e
        logger.info(f"Session deleted for user {session.user_id}", extra={"session_id": session_id})
        return True

    def delete_all_user_sessions(self, user_id: int) -> int:
        try:
            session_ids = self.redis.smembers(self._index_key(user_id))
            if not session_ids:
                return 0
            pipe = self.redis.pipeline()
            for session_id in session_ids:
                pipe.delete(self._session_key(session_id))
            pipe.delete(self._index_key(user_id))
            pipe.execute()
        except RedisError as e:
            logger.error(f"Error deleting all user sessions: {e}")
            raise SessionStoreError("Failed to delete sessions") from e
        logger.info(f"All sessions deleted for user {user_id}", extra={"count": len(session_ids)})
        return len(session_ids)

    def list_user_sessions(self, user_id: int) -> List[Tuple[str, SessionData]]:
        try:
            session_ids = self.redis.smembers(self._index_key(user_id))
        except RedisError as e:
            logger.error(f"Error listing user sessions: {e}")
            return []
        sessions = []
        for session_id in session_ids:
            session = self.peek_session(session_id)
            if session is not None:
                sessions.append((session_id, session))
        return sessions

    def is_inactive(self, session: SessionData) -> bool:
        return self.clock() - session.last_activity > self.policy.inactivity_seconds

    def _cleanup_expired(self, user_id: int) -> None:
        """Drop index entries whose session record has already expired."""
        index_key = self._index_key(user_id)
        session_ids = self.redis.smembers(index_key)
        stale = [sid for sid in session_ids if not self.redis.exists(self._session_key(sid))]
        if stale:
            self.redis.srem(index_key, *stale)
