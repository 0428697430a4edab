"""Chain module: USDC transfer logs, memos and token reads over JSON-RPC."""

from fairai.chain.provider import ChainLogClient

__all__ = ["ChainLogClient"]
