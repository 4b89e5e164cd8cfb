from __future__ import annotations

from typing import List, Optional, Protocol

from .models import Account, PlayerAccount


class PlayerRepository(Protocol):
    """
    Abstraction over player persistence.

    Implementations are responsible for:
    - Mapping between stored rows and `PlayerAccount` via its versioned
      record (`to_record` / `from_record`).
    - Hiding any SQL / file format details from the application layer.
    """

    def get_player(self, player_id: str) -> Optional[PlayerAccount]:
        """Return the player with the given internal ID, or None if not found."""

        ...

    def get_player_by_email(self, email: str) -> Optional[PlayerAccount]:
        ...

    def get_all_players(self) -> List[PlayerAccount]:
        """Return all players currently known to the system."""

        ...

    def add_player(self, player: PlayerAccount) -> None:
        """Persist a new player."""

        ...

    def save_player(
        self,
        player: PlayerAccount,
        expected_balance: Optional[int] = None,
    ) -> None:
        """
        Store the current state of an existing player.

        Called once after each deposit, withdrawal or round played.
        When `expected_balance` is given the write only happens if the stored
        balance still equals it; otherwise `StaleBalance` is raised. Raises
        `KeyError` for an unknown player.
        """

        ...


class IdentityRepository(Protocol):
    """
    Maps external identities (Telegram/Discord) to internal player IDs.

    A mapping exists while the external user is logged in; the application
    layer works exclusively with internal player IDs.
    """

    def find_player_id(
        self,
        provider: str,
        provider_user_id: str,
    ) -> Optional[str]:
        """Return the player ID mapped to the given external identity, if any."""

        ...

    def set_external_identity(
        self,
        provider: str,
        provider_user_id: str,
        player_id: str,
    ) -> None:
        """Associate an external identity with an internal player ID (login)."""

        ...

    def clear_external_identity(
        self,
        provider: str,
        provider_user_id: str,
    ) -> None:
        """Remove any mapping for the given external identity (logout)."""

        ...

    def get_external_ids_for_player(
        self,
        provider: str,
        player_id: str,
    ) -> List[str]:
        """
        Return all external IDs (e.g. Telegram chat IDs) associated with
        a given player for the specified provider.
        """

        ...


class AccountRepository(Protocol):
    """
    Persistence abstraction for login credentials (email/password hash).
    """

    def get_by_email(self, email: str) -> Optional[Account]:
        ...

    def get_by_id(self, account_id: str) -> Optional[Account]:
        ...

    def create_account(self, account: Account) -> None:
        ...

    def delete_account(self, account_id: str) -> None:
        ...
