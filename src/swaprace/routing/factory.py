"""Factory for creating quote providers and aggregators.

Creates real providers for the configured names; simulated mode swaps
in deterministic simulated providers.
"""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from swaprace.config import Settings, get_settings
from swaprace.routing.aggregator import QuoteAggregator
from swaprace.routing.base import QuoteProvider
from swaprace.routing.normalizer import PricingContext

logger = logging.getLogger(__name__)


def create_provider(
    name: str,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[QuoteProvider]:
    """Create a provider by its configured name."""
    settings = settings or get_settings()
    common = {
        "timeout": settings.provider_timeout_seconds,
        "pricing": PricingContext.from_settings(settings),
        "transport": transport,
    }
    key = name.lower()

    if key == "0x":
        from swaprace.routing.zeroex import ZeroExProvider
        return ZeroExProvider(
            api_key=settings.zeroex_api_key or None, base_url=settings.zeroex_api_url, **common
        )

    if key == "1inch":
        from swaprace.routing.oneinch import OneInchProvider
        return OneInchProvider(
            api_key=settings.oneinch_api_key or None, base_url=settings.oneinch_api_url, **common
        )

    if key == "lifi":
        from swaprace.routing.lifi import LiFiProvider
        return LiFiProvider(
            api_key=settings.lifi_api_key or None, base_url=settings.lifi_api_url, **common
        )

    if key == "dry_run":
        from swaprace.routing.dry_run import DryRunProvider
        return DryRunProvider(**common)

    if name in settings.custom_providers:
        from swaprace.routing.http import HttpQuoteProvider
        return HttpQuoteProvider(name=name, url=settings.custom_providers[name], **common)

    logger.warning(f"Unknown provider '{name}', skipping")
    return None


def create_simulated_aggregator(settings: Optional[Settings] = None) -> QuoteAggregator:
    """Create an aggregator of two competing simulated providers."""
    from swaprace.routing.dry_run import DryRunProvider

    settings = settings or get_settings()
    pricing = PricingContext.from_settings(settings)
    price = Decimal(str(settings.native_price_usd))
    aggregator = QuoteAggregator()
    aggregator.add_provider(
        DryRunProvider(name="simulated-a", price_ratio=price, fee_percent=Decimal("0.30"), pricing=pricing)
    )
    aggregator.add_provider(
        DryRunProvider(
            name="simulated-b",
            price_ratio=price,
            fee_percent=Decimal("0.25"),
            gas_estimate=220_000,
            pricing=pricing,
        )
    )
    return aggregator


def create_aggregator(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> QuoteAggregator:
    """Create an aggregator with the configured providers.

    Providers are registered in `enabled_providers` order, followed by
    any custom endpoints.
    """
    settings = settings or get_settings()
    if settings.simulated_mode:
        logger.info("Simulated mode: using simulated providers")
        return create_simulated_aggregator(settings)

    aggregator = QuoteAggregator()
    names = list(settings.enabled_providers)
    names += [n for n in settings.custom_providers if n not in names]

    for name in names:
        provider = create_provider(name, settings, transport)
        if provider is not None:
            aggregator.add_provider(provider)
            logger.info(f"Added {provider.name} provider")

    if not aggregator.providers:
        logger.warning("No quote providers configured")
    return aggregator
