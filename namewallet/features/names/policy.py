"""Chain policy constants and height-dependent rules for name operations."""

COIN = 100_000_000
CENT = 1_000_000

MIN_FIRSTUPDATE_DEPTH = 12
MAX_NAME_LENGTH = 255
MAX_VALUE_LENGTH = 1023

FEE_HALVING_INTERVAL = 8192
FEE_SPEEDUP_HEIGHT = 24000


def expiration_depth(height: int) -> int:
    if height < 24000:
        return 12000
    if height < 48000:
        return height - 12000
    return 36000


def network_fee(height: int, testnet: bool = False) -> int:
    """Fee burned by a name_firstupdate mined at ``height``."""
    # decrease 4x faster after the speedup height
    if height >= FEE_SPEEDUP_HEIGHT:
        height += (height - FEE_SPEEDUP_HEIGHT) * 3
    if (height >> 13) >= 60:
        return 0

    start = 10 * CENT if testnet else 50 * COIN
    fee = start >> (height >> 13)
    fee -= (fee >> 14) * (height % FEE_HALVING_INTERVAL)
    return fee


def round_up_fee(amount: int, unit: int = CENT) -> int:
    if amount <= 0:
        return 0
    return ((amount + unit - 1) // unit) * unit
