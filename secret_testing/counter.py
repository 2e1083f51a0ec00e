"""
secret_testing.counter
~~~~~~~~~~~~~~~~~~~~~~

Typed helpers for the counter contract's query and execute messages.
"""

import logging

from secret_testing.client import SecretNetworkClient, TransactionResult
from secret_testing.exceptions import QueryError, TransactionError

logger = logging.getLogger(__name__)

EXECUTE_GAS = 200_000


def query_count(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> int:
    response = client.query_contract(contract_address, contract_hash, {"get_count": {}})
    if not isinstance(response, dict) or "count" not in response:
        raise QueryError(f"Unexpected get_count response: {response!r}")
    return int(response["count"])


def increment_tx(
    client: SecretNetworkClient,
    contract_hash: str,
    contract_address: str,
    *,
    gas: int = EXECUTE_GAS,
) -> TransactionResult:
    tx = client.execute_contract(contract_address, contract_hash, {"increment": {}}, gas=gas)
    if not tx.succeeded:
        raise TransactionError(f"Increment failed (code {tx.code}): {tx.raw_log}")
    logger.info("Increment TX used %d gas", tx.gas_used)
    return tx


def reset_tx(
    client: SecretNetworkClient,
    contract_hash: str,
    contract_address: str,
    count: int = 0,
    *,
    gas: int = EXECUTE_GAS,
) -> TransactionResult:
    """Reset the counter to *count*. Only the contract owner may do this."""
    tx = client.execute_contract(contract_address, contract_hash, {"reset": {"count": count}}, gas=gas)
    if not tx.succeeded:
        raise TransactionError(f"Reset failed (code {tx.code}): {tx.raw_log}")
    logger.info("Reset TX used %d gas", tx.gas_used)
    return tx
