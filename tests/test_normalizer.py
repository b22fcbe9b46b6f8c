"""Tests for raw payload normalization."""

from decimal import Decimal

import pytest

from swaprace.errors import ProviderError
from swaprace.routing.normalizer import (
    PricingContext,
    calculate_net_value,
    normalize_lifi,
    normalize_oneinch,
    normalize_routes,
    normalize_zeroex,
    parse_int,
)

PRICING = PricingContext()  # 20 gwei, $2500 native, $1 buy token
ROUTER = "0xdef1c0ded9bec7f1a1670819833240f027b25eff"


class TestParseInt:
    def test_formats(self):
        assert parse_int(5) == 5
        assert parse_int("42") == 42
        assert parse_int("0x2a") == 42
        assert parse_int("1e3") == 1000

    def test_defaults(self):
        assert parse_int(None, 7) == 7
        assert parse_int("", 7) == 7
        assert parse_int("nope", 7) == 7
        assert parse_int(True, 7) == 7


class TestNetValue:
    def test_gas_cost_in_usd(self):
        """150k gas at 20 gwei and $2500 ETH costs $7.50."""
        output_usd, gas_usd, net = calculate_net_value(1_800_000_000, 6, 150_000, PRICING)
        assert output_usd == Decimal("1800")
        assert gas_usd == Decimal("7.5")
        assert net == Decimal("1792.5")


class TestZeroEx:
    def test_normalize(self, eth_to_usdc):
        raw = {
            "buyAmount": "1800000000",
            "estimatedGas": "150000",
            "gas": "180000",
            "to": ROUTER,
            "data": "0xabcdef",
            "value": str(10**18),
            "allowanceTarget": "0x0000000000000000000000000000000000000000",
        }
        quote = normalize_zeroex(raw, eth_to_usdc, PRICING)

        assert quote.provider == "0x"
        assert quote.output_amount == 1_800_000_000
        assert quote.output_decimals == 6
        assert quote.gas_estimate == 150_000
        assert quote.net_value_usd == Decimal("1792.5")
        assert quote.tx["to"] == ROUTER
        assert quote.tx["data"] == "0xabcdef"
        assert quote.spender == raw["allowanceTarget"]

    def test_missing_gas_uses_default(self, eth_to_usdc):
        quote = normalize_zeroex({"buyAmount": "1000000"}, eth_to_usdc, PRICING)
        assert quote.gas_estimate == 200_000
        assert quote.gas_cost_usd == Decimal("10")

    def test_missing_amount_raises(self, eth_to_usdc):
        with pytest.raises(ProviderError):
            normalize_zeroex({"to": ROUTER}, eth_to_usdc, PRICING)


class TestOneInch:
    def test_spender_is_router(self, usdc_to_eth):
        raw = {
            "dstAmount": "700000000000000000",
            "dstToken": {"decimals": 18},
            "tx": {"to": ROUTER, "data": "0x12aa3caf", "value": "0", "gas": 210000},
        }
        quote = normalize_oneinch(raw, usdc_to_eth, PRICING)

        assert quote.spender == ROUTER
        assert quote.gas_estimate == 210_000
        assert quote.output_display == Decimal("0.7")


class TestLiFi:
    def test_normalize(self, eth_to_usdc):
        raw = {
            "action": {"toToken": {"decimals": 6}},
            "estimate": {
                "toAmount": "1795500000",
                "approvalAddress": "0x1231deb6f5749ef6ce6943a275a1d3e7486f4eae",
                "gasCosts": [{"estimate": "100000", "amountUSD": "3.25"}],
            },
            "transactionRequest": {"to": ROUTER, "data": "0x4630a0d8", "value": "0x0", "gasLimit": "0x30d40"},
        }
        quote = normalize_lifi(raw, eth_to_usdc, PRICING)

        assert quote.spender == "0x1231deb6f5749ef6ce6943a275a1d3e7486f4eae"
        assert quote.gas_estimate == 100_000
        assert quote.gas_cost_usd == Decimal("3.25")
        assert quote.net_value_usd == Decimal("1792.25")
        assert quote.tx["gas"] == "0x30d40"


class TestRoutes:
    def test_picks_highest_net_route(self, eth_to_usdc):
        raw = {
            "routes": [
                {"outputAmount": "1800000000", "gasEstimate": 400000, "tx": {"to": ROUTER, "data": "0x01"}},
                {"outputAmount": "1799000000", "gasEstimate": 100000, "tx": {"to": ROUTER, "data": "0x02"}},
            ]
        }
        quote = normalize_routes(raw, eth_to_usdc, PRICING, provider="custom")
        # 1800 - 20 vs 1799 - 5
        assert quote.tx["data"] == "0x02"
        assert quote.net_value_usd == Decimal("1794")

    def test_single_route(self, eth_to_usdc):
        raw = {"outputAmount": "1000000", "spender": ROUTER, "tx": {"to": ROUTER, "data": "0x01"}}
        quote = normalize_routes(raw, eth_to_usdc, PRICING, provider="custom")
        assert quote.spender == ROUTER

    def test_empty_routes(self, eth_to_usdc):
        with pytest.raises(ProviderError):
            normalize_routes({"routes": []}, eth_to_usdc, PRICING, provider="custom")

    def test_route_without_amount_is_skipped(self, eth_to_usdc):
        raw = {
            "routes": [
                {"gasEstimate": 100000, "tx": {"to": ROUTER, "data": "0x01"}},
                {"outputAmount": "1799000000", "gasEstimate": 100000, "tx": {"to": ROUTER, "data": "0x02"}},
            ]
        }
        quote = normalize_routes(raw, eth_to_usdc, PRICING, provider="custom")
        assert quote.tx["data"] == "0x02"

    def test_no_usable_route(self, eth_to_usdc):
        with pytest.raises(ProviderError):
            normalize_routes({"routes": [{"tx": {}}, "junk"]}, eth_to_usdc, PRICING, provider="custom")
