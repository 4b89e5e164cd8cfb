from __future__ import annotations

import threading
from typing import Dict


class PlayerLocks:
    """
    Registry of one lock per player ID.

    The bots serve several chats at once, so the load-mutate-save sequence
    of a player's balance must not interleave with another one for the same
    player.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def for_player(self, player_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(player_id, threading.Lock())
