from __future__ import annotations

import threading
import uuid
from typing import Callable, Dict, Generic, Optional, TypeVar


G = TypeVar("G")


class InMemorySessionStore(Generic[G]):
    """Thread-safe in-memory store of game sessions keyed by ``game_id``.

    Responsibilities:
    - Create new sessions from a factory with unique ``game_id``s
    - Retrieve, replace, and delete sessions
    """

    def __init__(self, factory: Callable[[], G]) -> None:
        self._factory = factory
        self._lock = threading.RLock()
        self._games: Dict[str, G] = {}

    def create(self, game: Optional[G] = None) -> str:
        """Store ``game`` (or a fresh one) and return its ``game_id``."""
        gid = str(uuid.uuid4())
        if game is None:
            game = self._factory()
        with self._lock:
            self._games[gid] = game
        return gid

    def get(self, game_id: str) -> Optional[G]:
        with self._lock:
            return self._games.get(game_id)

    def set(self, game_id: str, game: G) -> None:
        with self._lock:
            if game_id not in self._games:
                raise KeyError(game_id)
            self._games[game_id] = game

    def pop(self, game_id: str) -> Optional[G]:
        with self._lock:
            return self._games.pop(game_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
