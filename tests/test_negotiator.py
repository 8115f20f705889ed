"""Tests for QuoteNegotiator variant fallback."""

from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from intentpay.assets.registry import COMMON_ASSETS
from intentpay.core.exceptions import (
    AssetNotFoundError,
    NegotiationExhausted,
    ProviderError,
    QuoteExpiredError,
    ValidationError,
)
from intentpay.core.types import RecipientScope, SwapType, TransferIntent, format_dt
from intentpay.negotiation.negotiator import QuoteNegotiator
from intentpay.negotiation.variants import (
    DEFAULT_VARIANTS,
    AssetEncoding,
    ParamOverride,
    encode_destination,
    prioritize,
)

NEAR = COMMON_ASSETS["NEAR"]
USDC_BASE = COMMON_ASSETS["USDC_BASE"]
USDC_NEAR = "nep141:17208628f84f5d6ad33f0da3bbbeb27ffcb398eac501a31bd6ad2011e36133a1"


@pytest.fixture
def intent(clock) -> TransferIntent:
    return TransferIntent(
        origin_asset=NEAR,
        destination_asset=USDC_BASE,
        amount=10**23,
        recipient="0xRecipient",
        recipient_scope=RecipientScope.EXTERNAL_CHAIN,
        refund_recipient="alice.near",
        deadline=clock(),
        max_slippage_bps=100,
    )


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def negotiator(client, registry, clock):
    return QuoteNegotiator(client, registry, deadline_window=timedelta(minutes=15), clock=clock)


def rejection(message: str = "rejected") -> ProviderError:
    return ProviderError(message, status_code=400)


class TestNegotiate:
    @pytest.mark.asyncio
    async def test_first_variant_accepted(self, negotiator, client, intent, make_quote) -> None:
        client.request_quote.return_value = make_quote()

        quote = await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        assert quote.deposit_address == "0xdeposit"
        assert client.request_quote.await_count == 1
        body = client.request_quote.await_args.args[0]
        assert body["destinationAsset"] == USDC_BASE
        assert body["originAsset"] == NEAR
        assert body["amount"] == str(10**23)
        assert body["refundTo"] == "alice.near"
        assert body["recipientType"] == "DESTINATION_CHAIN"
        assert body["swapType"] == "EXACT_INPUT"
        assert body["slippageTolerance"] == 100

    @pytest.mark.asyncio
    async def test_falls_back_to_third_variant(
        self, negotiator, client, intent, make_quote
    ) -> None:
        """Scenario: first two variants rejected, third accepted."""
        client.request_quote.side_effect = [rejection("v1"), rejection("v2"), make_quote()]

        quote = await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        assert quote.deposit_address == "0xdeposit"
        assert client.request_quote.await_count == 3
        third_body = client.request_quote.await_args_list[2].args[0]
        assert third_body["destinationAsset"] == "base:0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
        assert third_body["recipientType"] == "INTENTS"

    @pytest.mark.asyncio
    async def test_exhaustion_reports_every_variant_in_order(
        self, negotiator, client, intent
    ) -> None:
        client.request_quote.side_effect = [rejection(f"v{i}") for i in range(3)]

        with pytest.raises(NegotiationExhausted) as exc_info:
            await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        failures = exc_info.value.failures
        assert len(failures) == len(DEFAULT_VARIANTS)
        assert [f.variant for f in failures] == list(DEFAULT_VARIANTS)
        assert [str(f.error) for f in failures[:3]] == ["[400] v0", "[400] v1", "[400] v2"]
        # NEAR -> USDC cannot be quoted as exact-output, so no request is sent for it
        assert isinstance(failures[3].error, ValueError)
        assert client.request_quote.await_count == 3

    @pytest.mark.asyncio
    async def test_each_variant_called_exactly_once(self, negotiator, client, intent) -> None:
        client.request_quote.side_effect = ProviderError("timeout")

        with pytest.raises(NegotiationExhausted):
            await negotiator.negotiate(intent, DEFAULT_VARIANTS[:2])

        assert client.request_quote.await_count == 2

    @pytest.mark.asyncio
    async def test_deadline_recomputed_per_variant(
        self, negotiator, client, intent, clock, make_quote
    ) -> None:
        deadlines = []

        async def respond(body):
            deadlines.append(body["deadline"])
            if len(deadlines) == 1:
                clock.advance(minutes=2)
                raise rejection()
            return make_quote()

        client.request_quote.side_effect = respond
        start = clock()

        await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        assert deadlines[0] == format_dt(start + timedelta(minutes=15))
        assert deadlines[1] == format_dt(start + timedelta(minutes=17))

    @pytest.mark.asyncio
    async def test_quote_without_deposit_address_is_a_failure(
        self, negotiator, client, intent, make_quote
    ) -> None:
        client.request_quote.side_effect = [make_quote(deposit_address=""), make_quote()]

        quote = await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        assert quote.deposit_address == "0xdeposit"
        assert client.request_quote.await_count == 2

    @pytest.mark.asyncio
    async def test_expired_quote_is_a_failure(
        self, negotiator, client, intent, make_quote
    ) -> None:
        client.request_quote.return_value = make_quote(expires_in=timedelta(seconds=0))

        with pytest.raises(NegotiationExhausted) as exc_info:
            await negotiator.negotiate(intent, DEFAULT_VARIANTS[:1])

        assert isinstance(exc_info.value.failures[0].error, QuoteExpiredError)

    @pytest.mark.asyncio
    async def test_native_destination_skips_address_variants(
        self, negotiator, client, clock, make_quote
    ) -> None:
        intent = TransferIntent(
            origin_asset=NEAR,
            destination_asset=COMMON_ASSETS["ETH_BASE"],
            amount=1,
            recipient="0xRecipient",
            recipient_scope=RecipientScope.EXTERNAL_CHAIN,
            refund_recipient="alice.near",
            deadline=clock(),
            max_slippage_bps=100,
        )
        client.request_quote.side_effect = rejection()

        with pytest.raises(NegotiationExhausted) as exc_info:
            await negotiator.negotiate(intent, DEFAULT_VARIANTS)

        # Only the asset-id variant can be expressed for a native coin
        assert client.request_quote.await_count == 1
        assert len(exc_info.value.failures) == len(DEFAULT_VARIANTS)
        assert isinstance(exc_info.value.failures[1].error, ValueError)

    @pytest.mark.asyncio
    async def test_exact_output_quoted_between_same_tokens(
        self, negotiator, client, intent, make_quote
    ) -> None:
        client.request_quote.return_value = make_quote()
        same_token = replace(intent, origin_asset=USDC_NEAR, amount=5_000_000)

        await negotiator.negotiate(same_token, DEFAULT_VARIANTS[3:])

        body = client.request_quote.await_args.args[0]
        assert body["swapType"] == "EXACT_OUTPUT"
        assert body["amount"] == "5000000"

    @pytest.mark.asyncio
    async def test_empty_variants_rejected(self, negotiator, intent) -> None:
        with pytest.raises(ValidationError):
            await negotiator.negotiate(intent, [])

    @pytest.mark.asyncio
    async def test_unknown_destination(self, negotiator, client, intent) -> None:
        with pytest.raises(AssetNotFoundError):
            await negotiator.negotiate(
                replace(intent, destination_asset="nep141:nope"), DEFAULT_VARIANTS
            )
        client.request_quote.assert_not_awaited()


class TestVariants:
    def test_override_keeps_unset_fields(self, intent, clock) -> None:
        variant = ParamOverride(name="plain")
        applied = variant.apply(intent, clock() + timedelta(minutes=5))

        assert applied.recipient_scope == intent.recipient_scope
        assert applied.swap_type == intent.swap_type
        assert applied.deadline == clock() + timedelta(minutes=5)

    def test_override_replaces_set_fields(self, intent, clock) -> None:
        variant = ParamOverride(
            name="custom",
            recipient_scope=RecipientScope.WITHIN_PROVIDER,
            swap_type=SwapType.EXACT_OUTPUT,
            slippage_bps=300,
        )
        applied = variant.apply(intent, clock())

        assert applied.recipient_scope == RecipientScope.WITHIN_PROVIDER
        assert applied.swap_type == SwapType.EXACT_OUTPUT
        assert applied.max_slippage_bps == 300
        assert intent.max_slippage_bps == 100

    @pytest.mark.parametrize(
        "encoding,expected",
        [
            (AssetEncoding.ASSET_ID, USDC_BASE),
            (AssetEncoding.BARE_ADDRESS, "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"),
            (AssetEncoding.CHAIN_PREFIXED, "base:0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"),
        ],
    )
    def test_encode_destination(self, registry, encoding, expected) -> None:
        assert encode_destination(registry.lookup(USDC_BASE), encoding) == expected

    def test_encode_keeps_case_of_non_evm_addresses(self, registry) -> None:
        info = registry.lookup(COMMON_ASSETS["USDC_SOL"])
        assert (
            encode_destination(info, AssetEncoding.CHAIN_PREFIXED)
            == "solana:EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        )

    def test_exact_output_refused_across_assets(self, registry, intent, clock) -> None:
        variant = ParamOverride(name="exact-output", swap_type=SwapType.EXACT_OUTPUT)
        applied = variant.apply(intent, clock())

        with pytest.raises(ValueError, match="Exact-output needs matching assets"):
            variant.build_request(applied, registry.lookup(USDC_BASE))

    def test_exact_output_for_same_token(self, registry, intent, clock) -> None:
        variant = ParamOverride(
            name="exact-output",
            asset_encoding=AssetEncoding.CHAIN_PREFIXED,
            swap_type=SwapType.EXACT_OUTPUT,
        )
        same_token = replace(intent, origin_asset=USDC_NEAR, amount=5_000_000)
        applied = variant.apply(same_token, clock())

        body = variant.build_request(
            applied, registry.lookup(USDC_BASE), registry.lookup(USDC_NEAR)
        )

        assert body["swapType"] == "EXACT_OUTPUT"
        assert body["destinationAsset"] == "base:0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
        assert body["amount"] == "5000000"

    def test_prioritize(self) -> None:
        ordered = prioritize(DEFAULT_VARIANTS, AssetEncoding.CHAIN_PREFIXED)
        assert [v.name for v in ordered] == [
            "chain-prefixed-within-provider",
            "chain-prefixed-exact-output",
            "asset-id",
            "bare-address",
        ]
        assert prioritize(DEFAULT_VARIANTS, None) == list(DEFAULT_VARIANTS)

    def test_asset_encoding_from_string(self) -> None:
        assert AssetEncoding.from_string("chain_prefixed") == AssetEncoding.CHAIN_PREFIXED
        with pytest.raises(ValueError):
            AssetEncoding.from_string("hex")
