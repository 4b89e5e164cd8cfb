from __future__ import annotations

import csv
import logging
import os
import tempfile
import threading
from typing import Dict, List, Optional, Tuple

from domain.errors import StaleBalance
from domain.models import PlayerAccount
from domain.repositories import PlayerRepository

logger = logging.getLogger(__name__)


class CsvPlayerRepository(PlayerRepository):
    """
    Flat-file implementation of `PlayerRepository`.

    The file holds one header row (`PlayerAccount.RECORD_FIELDS`) followed
    by one row per player. Every write rewrites the whole file into a
    temporary sibling and swaps it in with `os.replace`, so readers never
    observe a half-written file.

    Rows that cannot be parsed are hidden from readers but written back
    unchanged, so a hand-edited mistake is never lost on the next save.
    The lock only serialises writers inside one process; run a single bot
    per CSV file.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _read_all(self) -> Tuple[Dict[str, PlayerAccount], List[List[str]]]:
        if not os.path.exists(self._path):
            return {}, []

        players: Dict[str, PlayerAccount] = {}
        unreadable: List[List[str]] = []
        with open(self._path, newline="", encoding="utf-8") as handle:
            reader = csv.reader(handle)
            header = next(reader, None)
            if header is None:
                return {}, []
            for line_no, row in enumerate(reader, start=2):
                if not row:
                    continue
                try:
                    player = PlayerAccount.from_record(dict(zip(header, row)))
                except (TypeError, ValueError) as exc:
                    logger.warning("Ignoring invalid row %d in %s: %s", line_no, self._path, exc)
                    unreadable.append(row)
                    continue
                players[player.player_id] = player
        return players, unreadable

    def _write_all(self, players: Dict[str, PlayerAccount], unreadable: List[List[str]]) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        fd, tmp_path = tempfile.mkstemp(prefix=".players-", suffix=".csv", dir=directory)
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
                writer = csv.writer(handle)
                writer.writerow(PlayerAccount.RECORD_FIELDS)
                for player in players.values():
                    record = player.to_record()
                    writer.writerow([record[name] for name in PlayerAccount.RECORD_FIELDS])
                writer.writerows(unreadable)
            os.replace(tmp_path, self._path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def get_player(self, player_id: str) -> Optional[PlayerAccount]:
        with self._lock:
            players, _ = self._read_all()
            return players.get(player_id)

    def get_player_by_email(self, email: str) -> Optional[PlayerAccount]:
        with self._lock:
            players, _ = self._read_all()
            for player in players.values():
                if player.email == email:
                    return player
            return None

    def get_all_players(self) -> List[PlayerAccount]:
        with self._lock:
            players, _ = self._read_all()
            return sorted(players.values(), key=lambda p: p.nickname)

    def add_player(self, player: PlayerAccount) -> None:
        with self._lock:
            players, unreadable = self._read_all()
            if player.player_id in players:
                raise ValueError(f"Player {player.player_id} already exists.")
            players[player.player_id] = player
            self._write_all(players, unreadable)

    def save_player(
        self,
        player: PlayerAccount,
        expected_balance: Optional[int] = None,
    ) -> None:
        with self._lock:
            players, unreadable = self._read_all()
            stored = players.get(player.player_id)
            if stored is None:
                raise KeyError(player.player_id)
            if expected_balance is not None and stored.balance != expected_balance:
                raise StaleBalance()
            players[player.player_id] = player
            self._write_all(players, unreadable)
