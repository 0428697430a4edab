"""
Example: Paid Inference Request

Publishes a prompt for a solution and pays the top-ranked operator.

Requires CIRCLE_API_KEY, ENTITY_SECRET, FAIRAI_WALLET_ID and
FAIRAI_UPLOAD_URL in the environment (or a .env file).

Usage:
    python examples/send_prompt.py <solution_tx> "a cat in a hat" [n_images]
"""

import asyncio
import sys

from dotenv import load_dotenv
load_dotenv()

from fairai import FairAI, FairAIError, RequestConfig


async def main(solution_tx: str, prompt: str, n_images: int | None):
    print("=== FairAI Paid Request ===\n")

    async with FairAI() as fairai:
        address = await fairai.get_connected_address()
        balance = await fairai.get_usdc_balance()
        print(f"✅ Wallet {address} holds {balance} USDC")

        config = RequestConfig(n_images=n_images) if n_images else None
        try:
            result = await fairai.prompt(prompt, solution_tx, config=config)
        except FairAIError as e:
            print(f"❌ Request failed: {e}")
            return

        print(f"✅ Request published: {result.ledger_tx_id}")
        print(f"✅ Paid {result.fee} USDC to {result.operator.evm_wallet}: {result.payment_tx_id}")
        print(f"   Conversation: {result.conversation_id}")


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2], int(sys.argv[3]) if len(sys.argv) == 4 else None))
