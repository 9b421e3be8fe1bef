"""
Gas Estimator.

Pads base gas estimates and gas prices with a percentage safety margin.
"""

from collections.abc import Mapping
from typing import Any

from loguru import logger

from chainbatch.config.constants import DEFAULT_GAS_MARGIN_PERCENT, GWEI
from chainbatch.utils.exceptions import InvalidConfigurationError

from .interfaces import GasSource
from .models import GasQuote


def apply_margin(base: int, margin_percent: int) -> int:
    """
    Add a percentage margin to a base value.

    Integer division truncates, so the margin never rounds up:
    base + base * margin_percent // 100.

    Args:
        base: Base estimate (gas units or wei)
        margin_percent: Margin in percent

    Returns:
        Padded value

    Examples:
        >>> apply_margin(1000, 10)
        1100
        >>> apply_margin(21000, 0)
        21000
    """
    if base < 0:
        raise ValueError(f"Base estimate must be non-negative, got {base}")
    if margin_percent < 0:
        raise ValueError(f"Margin must be non-negative, got {margin_percent}")
    return base + base * margin_percent // 100


class GasEstimator:
    """
    Estimates gas limits and prices with a safety margin.

    Features:
    - Gas limit padding over the node's estimate
    - Gas price padding over the node's suggestion
    - Optional gas price cap

    Collaborator errors propagate unchanged; nothing is retried.
    """

    def __init__(
        self,
        gas_source: GasSource,
        margin_percent: int = DEFAULT_GAS_MARGIN_PERCENT,
        max_gas_price: int | None = None,
    ) -> None:
        """
        Initialize gas estimator.

        Args:
            gas_source: Base estimate provider
            margin_percent: Default margin in percent
            max_gas_price: Cap for the padded gas price in wei (None = no cap)
        """
        if margin_percent < 0:
            raise InvalidConfigurationError(
                f"Gas margin must be non-negative, got {margin_percent}"
            )
        if max_gas_price is not None and max_gas_price <= 0:
            raise InvalidConfigurationError(
                f"Gas price cap must be positive, got {max_gas_price}"
            )

        self.gas_source = gas_source
        self.margin_percent = margin_percent
        self.max_gas_price = max_gas_price

    async def quote_gas(
        self,
        call: Mapping[str, Any],
        margin_percent: int | None = None,
    ) -> GasQuote:
        """
        Estimate gas limit for a call and pad it.

        Args:
            call: Transaction/call description (from, to, value, data)
            margin_percent: Override for the default margin

        Returns:
            GasQuote with base, margin and padded gas limit
        """
        margin = self._resolve_margin(margin_percent)
        base = int(await self.gas_source.estimate_gas(call))
        return GasQuote(base=base, margin_percent=margin, padded=apply_margin(base, margin))

    async def estimate_gas_with_margin(
        self,
        call: Mapping[str, Any],
        margin_percent: int | None = None,
    ) -> int:
        """
        Estimate gas limit with safety margin.

        Args:
            call: Transaction/call description
            margin_percent: Override for the default margin

        Returns:
            Padded gas limit
        """
        quote = await self.quote_gas(call, margin_percent)
        logger.debug(
            f"Gas estimate {quote.base} + {quote.margin_percent}% = {quote.padded}"
        )
        return quote.padded

    async def quote_gas_price(self, margin_percent: int | None = None) -> GasQuote:
        """
        Query the suggested gas price and pad it.

        Args:
            margin_percent: Override for the default margin

        Returns:
            GasQuote with base price, margin and padded price (capped if configured)
        """
        margin = self._resolve_margin(margin_percent)
        base = int(await self.gas_source.gas_price())
        padded = apply_margin(base, margin)

        if self.max_gas_price is not None and padded > self.max_gas_price:
            logger.warning(
                f"Gas price capped! Padded: {padded / GWEI:.2f} Gwei, "
                f"Used: {self.max_gas_price / GWEI:.2f} Gwei"
            )
            padded = self.max_gas_price

        return GasQuote(base=base, margin_percent=margin, padded=padded)

    async def optimal_gas_price(self, margin_percent: int | None = None) -> int:
        """
        Suggest gas price with safety margin.

        Args:
            margin_percent: Override for the default margin

        Returns:
            Padded gas price in wei
        """
        quote = await self.quote_gas_price(margin_percent)
        return quote.padded

    def _resolve_margin(self, margin_percent: int | None) -> int:
        if margin_percent is None:
            return self.margin_percent
        if margin_percent < 0:
            raise InvalidConfigurationError(
                f"Gas margin must be non-negative, got {margin_percent}"
            )
        return margin_percent
