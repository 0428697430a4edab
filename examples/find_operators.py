"""
Example: Operator Discovery

Lists the operators available for a solution, with the reason every other
registration was skipped.

Usage:
    python examples/find_operators.py <solution_tx>
"""

import asyncio
import sys

from dotenv import load_dotenv
load_dotenv()

from fairai import FairAI


async def main(solution_tx: str):
    print("=== FairAI Operator Discovery ===\n")

    # Reads FAIRAI_* settings from the environment; no credentials needed
    async with FairAI() as fairai:
        results = await fairai.resolver.evaluate(solution_tx)
        if not results:
            print("⚠️  No registrations found for this solution.")
            return

        for result in results:
            if result.ok:
                c = result.candidate
                print(f"✅ {c.arweave_wallet} fee={c.operator_fee} USDC wallet={c.evm_wallet}")
            else:
                detail = f" ({result.detail})" if result.detail else ""
                print(f"⏭️  {result.registration_tx}: {result.skip_reason.value}{detail}")

        ranked = await fairai.find_available_operators(solution_tx)
        print(f"\n{len(ranked)} operator(s) available")
        if ranked:
            print(f"Top: {ranked[0].arweave_wallet}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
