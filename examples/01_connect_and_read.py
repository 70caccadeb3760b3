"""Example: Connect a local node wallet and read the token state."""

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


async def main() -> None:
    """Authorize the node's first account and print the view state."""

    wallet = JsonRpcWallet(os.getenv("CT_RPC_URL", "http://127.0.0.1:8545"))
    client = TokenClient(wallet, config=ClientConfig.from_env(), notifier=print)

    try:
        response = await client.connect()
        if not response.success:
            print(f"Connect failed: {response.error}")
            return

        view = client.view
        print(f"Account:         {view.account}")
        print(f"Balance:         {view.balance} {view.symbol}")
        print(f"Decimals:        {view.decimals}")
        print(f"Trading enabled: {view.trading_enabled}")
    finally:
        client.close()
        wallet.close()


if __name__ == "__main__":
    asyncio.run(main())
