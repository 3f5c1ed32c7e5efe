"""
Per-session engine state.
Each session gets its own GameLogicService (its own win/loss queue) plus its
crash rounds and mines board, so concurrent players never share a pattern.
"""

import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

from adola.core.game_logic import GameLogicService
from adola.core.games.crash import CrashRound, get_profile
from adola.core.games.mines import MinesGame
from adola.core.logger import get_logger

logger = get_logger("sessions")


class Session:
    def __init__(self, session_id: str, engine: GameLogicService):
        self.session_id = session_id
        self.engine = engine
        self.crash_rounds: Dict[str, CrashRound] = {}
        self.mines: Optional[MinesGame] = None
        self.last_seen = time.monotonic()
        # Serializes game actions within one session
        self.lock = threading.RLock()

    def crash_round(self, profile_name: str) -> CrashRound:
        profile = get_profile(profile_name)
        round_ = self.crash_rounds.get(profile.name)
        if round_ is None:
            round_ = CrashRound(profile, self.engine)
            self.crash_rounds[profile.name] = round_
        return round_

    def mines_game(self) -> MinesGame:
        if self.mines is None:
            self.mines = MinesGame(self.engine)
        return self.mines


class SessionRegistry:
    """Thread-safe map of session id -> Session with idle expiry and a size cap."""

    def __init__(
        self,
        engine_factory: Callable[[], GameLogicService],
        ttl_seconds: float = 3600,
        max_sessions: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine_factory = engine_factory
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self.clock = clock
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Session:
        now = self.clock()
        with self._lock:
            self._expire(now)
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(session_id, self.engine_factory())
                self._sessions[session_id] = session
                logger.debug("Session created", extra={"session_id": session_id})
                while len(self._sessions) > self.max_sessions:
                    evicted, _ = self._sessions.popitem(last=False)
                    logger.info("Session evicted (registry full)", extra={"session_id": evicted})
            else:
                self._sessions.move_to_end(session_id)
            session.last_seen = now
            return session

    def drop(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def _expire(self, now: float):
        # Oldest-first order means we can stop at the first live session
        while self._sessions:
            session_id, session = next(iter(self._sessions.items()))
            if now - session.last_seen < self.ttl_seconds:
                break
            del self._sessions[session_id]
            logger.debug("Session expired", extra={"session_id": session_id})

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
