"""Example: Owner controls (trading flag, whitelist, freeze and unfreeze)."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from ct_api import ClientConfig, JsonRpcWallet, Response, TokenClient

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

TARGET = os.getenv("CT_TARGET", "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC")
FREEZE_SECONDS = os.getenv("CT_FREEZE_SECONDS", "0")


def report(step: str, response: Response) -> None:
    status = "ok" if response.success else f"failed ({response.error})"
    print(f"{step:<20} {status}")


async def main() -> None:
    """Run each owner operation once; the connected account must own the token."""

    wallet = JsonRpcWallet(os.getenv("CT_RPC_URL", "http://127.0.0.1:8545"))
    client = TokenClient(wallet, config=ClientConfig.from_env())

    try:
        if not (await client.connect()).success:
            return

        report("toggle trading", await client.toggle_trading())
        print(f"Trading enabled: {client.view.trading_enabled}")

        report("whitelist", await client.set_whitelist(TARGET, True))
        report("freeze", await client.freeze(TARGET, FREEZE_SECONDS))
        report("unfreeze", await client.unfreeze(TARGET))
    finally:
        client.close()
        wallet.close()


if __name__ == "__main__":
    asyncio.run(main())
