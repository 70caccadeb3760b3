"""Example: Create a vesting schedule, then follow wallet account and network switches."""

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

BENEFICIARY = os.getenv("CT_BENEFICIARY", "0x70997970C51812dc3A010C7d01b50e0d17dc79C8")


async def main() -> None:
    """Vest tokens to BENEFICIARY, switch to that account and claim."""

    wallet = JsonRpcWallet(os.getenv("CT_RPC_URL", "http://127.0.0.1:8545"))
    client = TokenClient(wallet, config=ClientConfig.from_env(), notifier=print)

    try:
        if not (await client.connect()).success:
            return

        # Blank start means "now"; zero cliff and duration vest immediately.
        response = await client.create_vesting(BENEFICIARY, "25", start="", cliff="0", duration="0")
        if not response.success:
            print(f"Vesting failed: {response.error}")
            return

        await wallet.switch_account(BENEFICIARY)
        await asyncio.sleep(0.5)
        print(f"Session now bound to {client.account}, balance {client.view.balance}")

        claim = await client.claim_vested()
        print(f"Claim: {claim.message or claim.error}; balance {client.view.balance}")

        other_rpc = os.getenv("CT_OTHER_RPC_URL")
        if other_rpc:
            await wallet.switch_network(other_rpc)
            print(f"After network switch connected={client.is_connected()}")
    finally:
        client.close()
        wallet.close()


if __name__ == "__main__":
    asyncio.run(main())
