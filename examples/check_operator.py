"""
Example: Audit One Operator

Checks an operator's registration fee and the redistribution of its latest
paid request.

Usage:
    python examples/check_operator.py <operator_arweave_address> <registration_tx>
"""

import asyncio
import sys

from dotenv import load_dotenv
load_dotenv()

from fairai import DistributionVerdict, FairAI


async def main(operator_arweave: str, registration_tx: str):
    async with FairAI() as fairai:
        link = await fairai.get_linked_evm_wallet(operator_arweave)
        if link is None:
            print("❌ Operator has not linked an EVM wallet")
            return
        print(f"✅ Linked wallet: {link.evm_address}")

        registration = await fairai.context.ledger.find_by_id(registration_tx)
        if registration is None:
            print("❌ Registration not found")
            return
        fee = registration.get_tag("Operator-Fee", "0")
        timestamp = registration.get_tag("Unix-Time")
        timestamp = float(timestamp) if timestamp else None

        paid = await fairai.validate_registration(link.evm_address, registration_tx, timestamp)
        print(f"{'✅' if paid else '❌'} Registration fee paid: {paid}")

        check = await fairai.validate_distribution_fees(
            link.evm_address, operator_arweave, fee, timestamp
        )
        icon = {
            DistributionVerdict.VALID: "✅",
            DistributionVerdict.INVALID: "❌",
            DistributionVerdict.UPSTREAM_UNDERPAID: "⚠️ ",
        }[check.verdict]
        print(f"{icon} Distribution: {check.verdict.value} ({check.reason})")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
