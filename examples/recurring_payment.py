import asyncio
import os

from intentpay import IntentPay, SimulatedAccount


async def run_recurring_payment_demo():
    print("🚀 Initializing intentpay with a simulated account...")
    # Quotes come from the live 1Click API (set INTENTPAY_API_TOKEN for authenticated limits)
    account = SimulatedAccount("demo.near", native_balance=2 * 10**24)
    recipient = os.environ.get("DEMO_RECIPIENT", "0x742d35Cc6634C0532925a3b844Bc9e7595f5e4a0")

    async with IntentPay(account) as client:
        balance = await client.get_balance()
        print(f"\n💰 Spendable balance: {client.registry.lookup(client.config.origin_asset).format_amount(balance)}")

        print(f"\n🗓️ Scheduling 0.1 NEAR -> USDC on Base to {recipient}, weekly...")
        payment_id = await client.add_recurring_payment(
            recipient=recipient,
            amount="0.1",
            token="USDC",
            chain="Base",
            frequency="weekly",
        )

        print("\n⚡ Running it once right away...")
        outcome = await client.execute_now(payment_id)
        if outcome is None:
            print("Already running, skipped")
        else:
            print(f"Outcome:         {outcome.kind.value}")
            print(f"Settled amount:  {outcome.settled_amount}")
            print(f"Reason/cause:    {outcome.reason or outcome.cause}")
            print(f"Deposit address: {outcome.deposit_address}")

        print("\n--- Schedule ---")
        for row in client.get_status():
            print(
                f"{row['id']}: {row['frequency']} {row['amount']} -> {row['token']} ({row['chain']}), "
                f"next due {row['next_due_at']}, last {row['last_outcome']}"
            )

        await client.cancel_recurring_payment(payment_id)
        print(f"\n🛑 Cancelled {payment_id}")


if __name__ == "__main__":
    asyncio.run(run_recurring_payment_demo())
