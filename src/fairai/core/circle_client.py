"""
Circle SDK client wrapper for developer-controlled wallets.

Signing is delegated to Circle: FairAI submits raw call data for the USDC
contract and Circle signs and broadcasts it from the configured wallet.
"""

from __future__ import annotations

import uuid

from circle.web3 import developer_controlled_wallets, utils

from fairai.core.config import Config
from fairai.core.exceptions import ConfigurationError, NetworkError, PaymentError
from fairai.core.types import FeeLevel, TransactionInfo, WalletInfo


class CircleClient:
    """Wrapper around Circle's Python SDK for wallet and transaction operations."""

    def __init__(self, config: Config) -> None:
        if not config.circle_api_key or not config.entity_secret:
            raise ConfigurationError(
                "circle_api_key and entity_secret are required for payments",
                details={"api_key": config.masked_api_key()},
            )
        self._config = config

        try:
            self._client = utils.init_developer_controlled_wallets_client(
                api_key=config.circle_api_key,
                entity_secret=config.entity_secret,
            )
        except Exception as e:
            raise ConfigurationError(
                f"Failed to initialize Circle SDK client: {e}",
                details={"error": str(e)},
            ) from e

        self._wallets_api = developer_controlled_wallets.WalletsApi(self._client)
        self._transactions_api = developer_controlled_wallets.TransactionsApi(self._client)

    def _get_ciphertext(self) -> str:
        return utils.generate_entity_secret_ciphertext(
            api_key=self._config.circle_api_key,
            entity_secret_hex=self._config.entity_secret,
        )

    # ==================== Wallet Operations ====================

    def get_wallet(self, wallet_id: str) -> WalletInfo:
        """Get a specific wallet by ID."""
        try:
            response = self._wallets_api.get_wallet(wallet_id)
            wallet_data = response.data.wallet.actual_instance.to_dict()
            return WalletInfo.from_api_response(wallet_data)

        except developer_controlled_wallets.ApiException as e:
            raise PaymentError(
                f"Failed to get wallet {wallet_id}: {e}",
                details={"api_error": str(e), "wallet_id": wallet_id},
            ) from e

    # ==================== Transaction Operations ====================

    def create_contract_call(
        self,
        wallet_id: str,
        contract_address: str,
        call_data: str,
        fee_level: FeeLevel = FeeLevel.MEDIUM,
        idempotency_key: str | None = None,
    ) -> TransactionInfo:
        """
        Submit raw call data to a contract.

        Args:
            wallet_id: Source wallet ID
            contract_address: Contract to call (the USDC token)
            call_data: Hex call data with 0x prefix, memo bytes included
            fee_level: Gas fee level
            idempotency_key: Optional idempotency key

        Returns:
            TransactionInfo for the contract call
        """
        try:
            if not idempotency_key:
                idempotency_key = str(uuid.uuid4())

            request = (
                developer_controlled_wallets.CreateContractExecutionTransactionForDeveloperRequest.from_dict(
                    {
                        "idempotencyKey": idempotency_key,
                        "entitySecretCiphertext": self._get_ciphertext(),
                        "walletId": wallet_id,
                        "contractAddress": contract_address,
                        "callData": call_data,
                        "feeLevel": fee_level.value,
                    }
                )
            )
            response = self._transactions_api.create_developer_transaction_contract_execution(
                request
            )

            tx_data = response.data.to_dict()
            return TransactionInfo.from_api_response(tx_data)

        except developer_controlled_wallets.ApiException as e:
            raise PaymentError(
                f"Failed to execute contract call: {e}",
                details={
                    "api_error": str(e),
                    "wallet_id": wallet_id,
                    "contract": contract_address,
                },
            ) from e

    def get_transaction(self, transaction_id: str) -> TransactionInfo:
        """Get transaction status by ID."""
        try:
            response = self._transactions_api.get_transaction(transaction_id)
            tx_data = response.data.transaction.to_dict()
            return TransactionInfo.from_api_response(tx_data)

        except developer_controlled_wallets.ApiException as e:
            raise NetworkError(
                f"Failed to get transaction {transaction_id}: {e}",
                details={"api_error": str(e), "transaction_id": transaction_id},
            ) from e
