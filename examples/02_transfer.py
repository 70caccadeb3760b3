"""Example: Transfer tokens and watch the balance refresh."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from ct_api import ClientConfig, JsonRpcWallet, TokenClient

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Second default hardhat account
RECIPIENT = os.getenv("CT_RECIPIENT", "0x70997970C51812dc3A010C7d01b50e0d17dc79C8")
AMOUNT = os.getenv("CT_AMOUNT", "10")


async def main() -> None:
    """Send AMOUNT tokens to RECIPIENT from the node's first account."""

    wallet = JsonRpcWallet(os.getenv("CT_RPC_URL", "http://127.0.0.1:8545"))
    client = TokenClient(wallet, config=ClientConfig.from_env(), notifier=print)
    client.view.add_listener(
        lambda view, changed: print(f"View changed {sorted(changed)}: balance={view.balance}")
    )

    try:
        if not (await client.connect()).success:
            return

        print(f"Transferring {AMOUNT} {client.view.symbol} to {RECIPIENT}")
        response = await client.transfer(RECIPIENT, AMOUNT)
        if response.success:
            print(f"Transfer confirmed in block {response.block_number}")
            print(f"Transaction hash: {response.transaction_hash}")
            print(f"Recipient balance: {await client.balance_of(RECIPIENT)}")
        else:
            print(f"Transfer failed: {response.error}")
    finally:
        client.close()
        wallet.close()


if __name__ == "__main__":
    asyncio.run(main())
