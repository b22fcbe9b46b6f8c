"""Conversion of raw provider payloads into canonical quotes.

Everything here is pure: no network, no clock, no settings lookups.
Ranking is by net value: output value in USD minus the gas cost in USD.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from swaprace.errors import ProviderError
from swaprace.models import Quote, SwapRequest

WEI_PER_ETHER = Decimal(10) ** 18


@dataclass(frozen=True)
class PricingContext:
    """Prices used to express quotes in USD."""

    gas_price_wei: int = 20 * 10**9
    native_price_usd: Decimal = Decimal("2500")
    buy_token_price_usd: Decimal = Decimal("1")
    default_gas_estimate: int = 200_000

    @classmethod
    def from_settings(cls, settings) -> "PricingContext":
        return cls(
            gas_price_wei=settings.gas_price_wei,
            native_price_usd=Decimal(str(settings.native_price_usd)),
            buy_token_price_usd=Decimal(str(settings.buy_token_price_usd)),
            default_gas_estimate=settings.default_gas_estimate,
        )


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Parse ints given as int, decimal string or 0x-prefixed hex string."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        text = str(value).strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(Decimal(text))
    except (ValueError, ArithmeticError):
        return default


def calculate_net_value(
    output_amount: int,
    output_decimals: int,
    gas_estimate: int,
    pricing: PricingContext,
) -> tuple[Decimal, Decimal, Decimal]:
    """Return (output_usd, gas_cost_usd, net_value_usd)."""
    output_usd = Decimal(output_amount).scaleb(-output_decimals) * pricing.buy_token_price_usd
    gas_cost_wei = Decimal(gas_estimate) * Decimal(pricing.gas_price_wei)
    gas_cost_usd = gas_cost_wei / WEI_PER_ETHER * pricing.native_price_usd
    return output_usd, gas_cost_usd, output_usd - gas_cost_usd


def build_quote(
    provider: str,
    output_amount: int,
    output_decimals: int,
    gas_estimate: Optional[int],
    pricing: PricingContext,
    tx: Optional[dict] = None,
    spender: Optional[str] = None,
    raw: Optional[dict] = None,
    gas_cost_usd: Optional[Decimal] = None,
) -> Quote:
    """Assemble a quote, deriving USD values from the pricing context."""
    gas = gas_estimate or pricing.default_gas_estimate
    output_usd, computed_gas_usd, _ = calculate_net_value(
        output_amount, output_decimals, gas, pricing
    )
    if gas_cost_usd is None:
        gas_cost_usd = computed_gas_usd

    return Quote(
        provider=provider,
        output_amount=output_amount,
        output_decimals=output_decimals,
        gas_estimate=gas,
        gas_cost_usd=gas_cost_usd,
        output_usd=output_usd,
        net_value_usd=output_usd - gas_cost_usd,
        tx=dict(tx or {}),
        spender=spender,
        raw=dict(raw or {}),
    )


def _require_amount(provider: str, value: Any) -> int:
    amount = parse_int(value)
    if amount is None or amount < 0:
        raise ProviderError(provider, f"{provider} returned no output amount")
    return amount


def normalize_zeroex(
    raw: dict, request: SwapRequest, pricing: PricingContext, provider: str = "0x"
) -> Quote:
    """0x quote: transaction fields are top level, spender is `allowanceTarget`."""
    output = _require_amount(provider, raw.get("buyAmount"))
    gas = parse_int(raw.get("estimatedGas")) or parse_int(raw.get("gas"))
    tx = {
        "to": raw.get("to"),
        "data": raw.get("data"),
        "value": raw.get("value", "0"),
        "gas": raw.get("gas"),
    }
    return build_quote(
        provider,
        output,
        request.buy_token_decimals,
        gas,
        pricing,
        tx=tx,
        spender=raw.get("allowanceTarget"),
        raw=raw,
    )


def normalize_oneinch(
    raw: dict, request: SwapRequest, pricing: PricingContext, provider: str = "1inch"
) -> Quote:
    """1inch swap: transaction under `tx`, the router `tx.to` is the spender."""
    output = _require_amount(provider, raw.get("dstAmount", raw.get("toAmount")))
    tx = raw.get("tx") or {}
    decimals = (raw.get("dstToken") or {}).get("decimals", request.buy_token_decimals)
    return build_quote(
        provider,
        output,
        int(decimals),
        parse_int(tx.get("gas")),
        pricing,
        tx=tx,
        spender=tx.get("to"),
        raw=raw,
    )


def normalize_lifi(
    raw: dict, request: SwapRequest, pricing: PricingContext, provider: str = "lifi"
) -> Quote:
    """LI.FI quote: spender is `estimate.approvalAddress`, tx under `transactionRequest`."""
    estimate = raw.get("estimate") or {}
    output = _require_amount(provider, estimate.get("toAmount"))
    to_token = (raw.get("action") or {}).get("toToken") or {}
    decimals = int(to_token.get("decimals", request.buy_token_decimals))
    tx = dict(raw.get("transactionRequest") or {})
    if "gasLimit" in tx and "gas" not in tx:
        tx["gas"] = tx["gasLimit"]

    gas_costs = estimate.get("gasCosts") or []
    gas = sum(parse_int(cost.get("estimate"), 0) for cost in gas_costs) or parse_int(tx.get("gas"))
    gas_usd = None
    usd_values = [cost.get("amountUSD") for cost in gas_costs if cost.get("amountUSD")]
    if usd_values:
        gas_usd = sum((Decimal(str(v)) for v in usd_values), Decimal("0"))

    return build_quote(
        provider,
        output,
        decimals,
        gas,
        pricing,
        tx=tx,
        spender=estimate.get("approvalAddress"),
        raw=raw,
        gas_cost_usd=gas_usd,
    )


def normalize_routes(raw: dict, request: SwapRequest, pricing: PricingContext, provider: str) -> Quote:
    """Generic route payload: `{"routes": [...]}` or a single route.

    Each route carries `outputAmount`, optional `outputDecimals`,
    `gasEstimate`, `spender` and a `tx` object. The route with the highest
    net value is returned; on a tie the first one wins.
    """
    routes = raw.get("routes")
    if routes is None:
        routes = [raw]
    if not isinstance(routes, list) or not routes:
        raise ProviderError(provider, f"{provider} returned no routes")

    best: Optional[Quote] = None
    for route in routes:
        if not isinstance(route, dict):
            continue
        output = parse_int(route.get("outputAmount"))
        if output is None or output < 0:
            continue
        tx = route.get("tx") or {}
        quote = build_quote(
            provider,
            output,
            int(route.get("outputDecimals", request.buy_token_decimals)),
            parse_int(route.get("gasEstimate")) or parse_int(tx.get("gas")),
            pricing,
            tx=tx,
            spender=route.get("spender"),
            raw=route,
        )
        if best is None or quote.net_value_usd > best.net_value_usd:
            best = quote

    if best is None:
        raise ProviderError(provider, f"{provider} returned no usable route")
    return best
