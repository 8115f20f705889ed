"""Tests for SimulatedAccount."""

import pytest

from intentpay.wallet.account import SimulatedAccount

WRAP = "nep141:wrap.near"
USDT = "nep141:usdt.tether-token.near"


@pytest.mark.asyncio
async def test_deposit_moves_native_into_wrapped_asset() -> None:
    account = SimulatedAccount("alice.near", native_balance=100, balances={WRAP: 5})

    tx_hash = await account.deposit_native(40)

    assert tx_hash.startswith("sim-deposit-")
    assert await account.query_native_balance() == 60
    assert await account.query_balance(WRAP) == 45
    assert account.deposits == [40]


@pytest.mark.asyncio
async def test_deposit_beyond_native_balance_fails() -> None:
    account = SimulatedAccount("alice.near", native_balance=10)

    with pytest.raises(RuntimeError, match="Not enough native balance"):
        await account.deposit_native(11)

    with pytest.raises(ValueError):
        await account.deposit_native(0)

    assert account.deposits == []


@pytest.mark.asyncio
async def test_transfer_debits_and_records() -> None:
    account = SimulatedAccount("alice.near", balances={USDT: 1_000})

    tx_hash = await account.submit_transfer("0xdeposit", USDT, 400)

    assert await account.query_balance(USDT) == 600
    (transfer,) = account.transfers
    assert transfer.tx_hash == tx_hash
    assert transfer.target == "0xdeposit"
    assert transfer.amount == 400


@pytest.mark.asyncio
async def test_transfer_exceeding_balance_fails() -> None:
    account = SimulatedAccount("alice.near", balances={USDT: 100})

    with pytest.raises(RuntimeError, match="exceeds balance"):
        await account.submit_transfer("0xdeposit", USDT, 101)

    assert await account.query_balance(USDT) == 100
    assert account.transfers == []


@pytest.mark.asyncio
async def test_unknown_asset_has_zero_balance() -> None:
    account = SimulatedAccount("alice.near")

    assert account.account_id == "alice.near"
    assert await account.query_balance(USDT) == 0
