"""
FairAI protocol constants.

Contract addresses on Arbitrum, ledger tag vocabulary, operation names and
the fee split shared by every operator.
"""

from __future__ import annotations

from decimal import Decimal

from fairai.core.types import Network


# ───────────────────────────────────────────────────────────────────
# Protocol identity
# ───────────────────────────────────────────────────────────────────

PROTOCOL_NAME = "FairAI"
PROTOCOL_VERSION = "2.0-test"
STAMP_PROTOCOL_NAME = "Stamp"


# ───────────────────────────────────────────────────────────────────
# EVM Contract Addresses
# ───────────────────────────────────────────────────────────────────

NATIVE_USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
USDC_ARB_SEPOLIA = "0x75faf114eafb1BDbe2F0316DF893fd58CE46AA4d"

USDC_ADDRESSES: dict[str, str] = {
    "ARB": NATIVE_USDC_ARB,
    "ARB-SEPOLIA": USDC_ARB_SEPOLIA,
}

# Placeholder treasury until the marketplace multisig is published
MARKETPLACE_EVM_ADDRESS = "0x611dEe04f236BbC45e3a6De266ABe2B2b32eab31"


# ───────────────────────────────────────────────────────────────────
# Fees
# ───────────────────────────────────────────────────────────────────

REGISTRATION_USDC_FEE = Decimal("1")
CURATOR_SHARE = Decimal("0.2")
MARKETPLACE_SHARE = Decimal("0.1")


# ───────────────────────────────────────────────────────────────────
# Ledger operation names
# ───────────────────────────────────────────────────────────────────

OP_OPERATOR_REGISTRATION = "Operator Registration"
OP_OPERATOR_CANCELLATION = "Operator Cancellation"
OP_OPERATOR_ACTIVE_PROOF = "Operator Active Proof"
OP_EVM_WALLET_LINK = "EVM Wallet Link"
OP_CONVERSATION_START = "Conversation Start"
OP_INFERENCE_REQUEST = "Inference Request"
OP_INFERENCE_RESPONSE = "Script Inference Response"


# ───────────────────────────────────────────────────────────────────
# Ledger tag names
# ───────────────────────────────────────────────────────────────────

TAG_PROTOCOL_NAME = "Protocol-Name"
TAG_PROTOCOL_VERSION = "Protocol-Version"
TAG_OPERATION_NAME = "Operation-Name"
TAG_SCRIPT_TX = "Script-Transaction"
TAG_REGISTRATION_TX = "Registration-Transaction"
TAG_REQUEST_TX = "Request-Transaction"
TAG_OPERATOR_FEE = "Operator-Fee"
TAG_UNIX_TIME = "Unix-Time"
TAG_N_IMAGES = "N-Images"
TAG_CONVERSATION_ID = "Conversation-Identifier"
TAG_CONTENT_TYPE = "Content-Type"
TAG_TX_ORIGIN = "Transaction-Origin"
TAG_DATA_SOURCE = "Data-Source"
TAG_EVM_PUBLIC_KEY = "EVM-Public-Key"
TAG_ASSET_NAMES = "Asset-Names"
TAG_WIDTH = "Width"
TAG_HEIGHT = "Height"
TAG_PRIVATE_MODE = "Private-Mode"
TAG_USER_PUBLIC_KEY = "User-Public-Key"
TAG_LICENSE = "License"
TAG_DERIVATION = "Derivation"
TAG_COMMERCIAL_USE = "Commercial-Use"

TX_ORIGIN_NODE = "FairAI Node"

# Universal Data License defaults attached to every request
DEFAULT_LICENSE_TAGS: dict[str, str] = {
    TAG_LICENSE: "",
    TAG_DERIVATION: "Allowed-With-License-Passthrough",
    TAG_COMMERCIAL_USE: "Allowed",
}


# ───────────────────────────────────────────────────────────────────
# Windows and limits
# ───────────────────────────────────────────────────────────────────

LIVENESS_WINDOW_SECONDS = 30 * 60
DEFAULT_PAGE_SIZE = 100
MAX_UPLOAD_BYTES = 100 * 1024
MAX_N_IMAGES = 10

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

# Function selectors (first 4 bytes of keccak256 of the signature)
FUNCTION_SELECTORS: dict[str, str] = {
    "transfer(address,uint256)": "a9059cbb",
    "transferFrom(address,address,uint256)": "23b872dd",
    "approve(address,uint256)": "095ea7b3",
    "balanceOf(address)": "70a08231",
    "allowance(address,address)": "dd62ed3e",
    "decimals()": "313ce567",
}

# 0x + 4-byte selector + 32-byte arguments; the memo follows
MEMO_OFFSET_CHARS = 2 + 8 + 64 * 2
TRANSFER_FROM_MEMO_OFFSET_CHARS = 2 + 8 + 64 * 3

# Native ETH on Arbitrum
NATIVE_DECIMALS = 18


def get_usdc_address(network: Network | str) -> str | None:
    """Get the USDC contract address for a network."""
    key = network.value if isinstance(network, Network) else str(network).upper()
    return USDC_ADDRESSES.get(key)
