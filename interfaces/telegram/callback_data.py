from __future__ import annotations


def encode_tier_choice(tier_name: str, wager: int) -> str:
    """
    Encode a "choose difficulty" callback.

    Format: play:{tier}:{wager}
    """

    return f"play:{tier_name}:{wager}"


def parse_tier_choice(data: str) -> tuple[str, int]:
    parts = data.split(":")
    if len(parts) != 3 or parts[0] != "play" or not parts[1]:
        raise ValueError(f"Invalid tier choice callback data: {data}")

    tier_name = parts[1]
    wager = int(parts[2])
    return tier_name, wager
