"""
Shortened identifiers for log lines.

Dispatcher and watcher logs name recipients and transaction hashes on every
submission and poll; these helpers keep those lines readable and avoid
writing full addresses into shared log files.
"""


def mask_address(address: str | None) -> str:
    """
    Shorten an address to its prefix and last four hex digits.

    >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
    '0x1234...5678'
    >>> mask_address(None)
    '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """Shorten a transaction hash to 0x + 8 leading and 6 trailing hex digits."""
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:10]}...{tx_hash[-6:]}"
