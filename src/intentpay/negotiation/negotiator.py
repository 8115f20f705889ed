"""QuoteNegotiator - ordered variant fallback against the quote endpoint."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from intentpay.assets.registry import AssetRegistry
from intentpay.core.exceptions import (
    NegotiationExhausted,
    ProviderError,
    QuoteExpiredError,
    ValidationError,
)
from intentpay.core.logging import get_logger
from intentpay.core.types import Quote, TransferIntent, utc_now
from intentpay.negotiation.variants import ParamOverride, VariantFailure
from intentpay.provider.client import OneClickClient


class QuoteNegotiator:
    """
    Requests a quote, trying each variant once until the provider accepts one.

    A provider error never aborts the loop. Each attempt gets its own
    deadline computed from the clock at that moment, so a slow failing
    variant does not shorten the window of the next one.
    """

    def __init__(
        self,
        client: OneClickClient,
        registry: AssetRegistry,
        deadline_window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._registry = registry
        self._deadline_window = deadline_window
        self._clock = clock
        self._logger = get_logger("negotiator")

    async def negotiate(
        self,
        intent: TransferIntent,
        variants: Sequence[ParamOverride],
    ) -> Quote:
        """
        Negotiate a quote for ``intent``.

        Args:
            intent: Base transfer intent
            variants: Overrides to try, in order

        Returns:
            The first accepted Quote

        Raises:
            ValidationError: If ``variants`` is empty
            AssetNotFoundError: If the destination asset is unknown
            NegotiationExhausted: If every variant failed, carrying one
                VariantFailure per variant in the order tried
        """
        if not variants:
            raise ValidationError("At least one quote variant is required")

        destination = self._registry.lookup(intent.destination_asset)
        origin = self._registry.get(intent.origin_asset)
        failures: list[VariantFailure] = []

        for index, variant in enumerate(variants, start=1):
            attempt_intent = variant.apply(intent, self._clock() + self._deadline_window)
            try:
                body = variant.build_request(attempt_intent, destination, origin)
            except ValueError as e:
                self._logger.warning(f"Variant {variant.name} not applicable: {e}")
                failures.append(VariantFailure(variant=variant, error=e))
                continue

            self._logger.info(
                f"Requesting quote (variant {index}/{len(variants)}: {variant.name}) "
                f"{intent.origin_asset} -> {body['destinationAsset']}"
            )
            try:
                quote = await self._client.request_quote(body)
            except ProviderError as e:
                self._logger.warning(f"Variant {variant.name} rejected: {e}")
                failures.append(VariantFailure(variant=variant, error=e))
                continue

            error = self._check_quote(quote)
            if error is not None:
                self._logger.warning(f"Variant {variant.name} unusable: {error}")
                failures.append(VariantFailure(variant=variant, error=error))
                continue

            self._logger.info(
                f"Quote accepted via {variant.name}: "
                f"{quote.amount_in_formatted or quote.quoted_input_amount} -> "
                f"{quote.amount_out_formatted or quote.quoted_output_amount} "
                f"(deposit {quote.deposit_address}, expires {quote.expiry.isoformat()})"
            )
            return quote

        raise NegotiationExhausted(failures)

    def _check_quote(self, quote: Quote) -> Exception | None:
        """A quote is usable only with a settlement target that has not expired."""
        if not quote.deposit_address:
            return ProviderError("Quote carries no deposit address")
        if quote.is_expired(self._clock()):
            return QuoteExpiredError(quote.provider_quote_id, quote.expiry)
        return None
