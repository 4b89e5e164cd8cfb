from __future__ import annotations


class SlotError(Exception):
    """
    Base class for recoverable validation failures raised by the domain.

    The message is meant to be shown to the player as-is; none of these
    errors leaves an account in a partially updated state.
    """

    default_message = "Operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidAmount(SlotError):
    default_message = "Amount must be greater than zero."


class InsufficientFunds(SlotError):
    default_message = "Insufficient funds."


class Ineligible(SlotError):
    default_message = "Player is not eligible to place bets."


class WagerOutOfRange(SlotError):
    default_message = "Wager is outside the limits of this tier."


class UnknownTier(SlotError):
    default_message = "Unknown difficulty tier."


class StaleBalance(SlotError):
    default_message = "Your balance changed in another session. Please try again."
