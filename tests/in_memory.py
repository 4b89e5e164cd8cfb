from typing import Dict, List, Optional, Tuple

from domain.errors import StaleBalance
from domain.models import Account, PlayerAccount
from domain.repositories import AccountRepository, IdentityRepository, PlayerRepository


class InMemoryPlayerRepository(PlayerRepository):
    """Stores versioned records, so every load builds a fresh `PlayerAccount`."""

    def __init__(self):
        self.records: Dict[str, dict] = {}
        self.saves = 0

    def get_player(self, player_id: str) -> Optional[PlayerAccount]:
        record = self.records.get(player_id)
        return PlayerAccount.from_record(record) if record else None

    def get_player_by_email(self, email: str) -> Optional[PlayerAccount]:
        for record in self.records.values():
            if record["email"] == email:
                return PlayerAccount.from_record(record)
        return None

    def get_all_players(self) -> List[PlayerAccount]:
        return [PlayerAccount.from_record(r) for r in self.records.values()]

    def add_player(self, player: PlayerAccount) -> None:
        self.records[player.player_id] = player.to_record()

    def save_player(self, player: PlayerAccount, expected_balance: Optional[int] = None) -> None:
        stored = self.records.get(player.player_id)
        if stored is None:
            raise KeyError(player.player_id)
        if expected_balance is not None and stored["balance"] != expected_balance:
            raise StaleBalance()
        self.saves += 1
        self.records[player.player_id] = player.to_record()


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[str, Account] = {}

    def get_by_email(self, email: str) -> Optional[Account]:
        for account in self.accounts.values():
            if account.email == email:
                return account
        return None

    def get_by_id(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    def create_account(self, account: Account) -> None:
        self.accounts[account.id] = account

    def delete_account(self, account_id: str) -> None:
        self.accounts.pop(account_id, None)


class InMemoryIdentityRepository(IdentityRepository):
    def __init__(self):
        self.mapping: Dict[Tuple[str, str], str] = {}

    def find_player_id(self, provider: str, provider_user_id: str) -> Optional[str]:
        return self.mapping.get((provider, provider_user_id))

    def set_external_identity(self, provider: str, provider_user_id: str, player_id: str) -> None:
        self.mapping[(provider, provider_user_id)] = player_id

    def clear_external_identity(self, provider: str, provider_user_id: str) -> None:
        self.mapping.pop((provider, provider_user_id), None)

    def get_external_ids_for_player(self, provider: str, player_id: str) -> List[str]:
        return [
            external_id
            for (p, external_id), pid in self.mapping.items()
            if p == provider and pid == player_id
        ]
