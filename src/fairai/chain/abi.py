"""
Minimal ABI helpers for USDC reads and memo-carrying transfers.

A FairAI payment is a plain ERC-20 ``transfer(address,uint256)`` call with
the UTF-8 bytes of an Arweave transaction id appended to the call data.
The token contract ignores the trailing bytes, so the memo survives on
chain and can be read back from the transaction input.

Payments made from an allowance use ``transferFrom(address,address,uint256)``
the same way, with the memo after the third argument.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from fairai.core.constants import (
    FUNCTION_SELECTORS,
    MEMO_OFFSET_CHARS,
    TRANSFER_FROM_MEMO_OFFSET_CHARS,
)


def encode_uint256(val: int) -> str:
    """Encode uint256 as 32-byte hex."""
    if val < 0:
        raise ValueError("uint256 cannot be negative")
    return f"{val:064x}"


def encode_address(addr: str) -> str:
    """Encode address as 32-byte hex (left-padded)."""
    addr_clean = addr.lower().replace("0x", "")
    return f"{addr_clean:>064}"


def address_topic(addr: str) -> str:
    """Encode an address as an indexed event topic."""
    return "0x" + encode_address(addr)


def decode_address(hex_data: str) -> str:
    """Decode address from 32-byte hex."""
    if not hex_data or len(hex_data) < 40:
        return ""
    return "0x" + hex_data[-40:]


def decode_uint256(hex_data: str) -> int:
    """Decode uint256 from 32-byte hex."""
    hex_data = hex_data[2:] if hex_data.startswith("0x") else hex_data
    if not hex_data:
        return 0
    return int(hex_data[:64], 16)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Scale a token amount to its smallest unit, truncating dust."""
    scaled = (amount * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Scale a smallest-unit integer back to a token amount."""
    return Decimal(value) / (Decimal(10) ** decimals)


def encode_call(signature: str, *args: str) -> str:
    """Build call data from a known selector and pre-encoded 32-byte args."""
    return "0x" + FUNCTION_SELECTORS[signature] + "".join(args)


def encode_transfer_with_memo(to: str, amount: int, memo: str) -> str:
    """Encode ``transfer(to, amount)`` followed by the memo bytes."""
    call = encode_call(
        "transfer(address,uint256)", encode_address(to), encode_uint256(amount)
    )
    return call + memo.encode("utf-8").hex()


def encode_transfer_from_with_memo(sender: str, to: str, amount: int, memo: str) -> str:
    """Encode ``transferFrom(sender, to, amount)`` followed by the memo bytes."""
    call = encode_call(
        "transferFrom(address,address,uint256)",
        encode_address(sender),
        encode_address(to),
        encode_uint256(amount),
    )
    return call + memo.encode("utf-8").hex()


def encode_approve(spender: str, amount: int) -> str:
    return encode_call("approve(address,uint256)", encode_address(spender), encode_uint256(amount))


def decode_memo(input_data: str | None) -> str:
    """
    Recover the memo appended to a ``transfer`` or ``transferFrom`` call.

    Returns an empty string when the input carries nothing past the ABI
    arguments.
    """
    if not input_data:
        return ""
    if input_data[2:10] == FUNCTION_SELECTORS["transferFrom(address,address,uint256)"]:
        offset = TRANSFER_FROM_MEMO_OFFSET_CHARS
    else:
        offset = MEMO_OFFSET_CHARS
    if len(input_data) <= offset:
        return ""
    hex_memo = input_data[offset:]
    try:
        return bytes.fromhex(hex_memo).decode("utf-8", errors="replace").rstrip("\x00")
    except ValueError:
        return ""
