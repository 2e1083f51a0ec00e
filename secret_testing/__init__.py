"""
secret-testing
~~~~~~~~~~~~~~

Integration-testing utilities for CosmWasm contracts on Secret Network.
Creates a throw-away wallet, funds it from a dev-chain faucet, deploys a
contract and runs test functions against it in sequence.

Usage::

    from secret_testing import (
        initialize_client,
        fill_up_from_faucet,
        initialize_contract,
        run_tests,
    )

    client = initialize_client("http://localhost:1317", "secretdev-1")
    fill_up_from_faucet(client, 100_000_000)
    code_hash, address = initialize_contract(client, "contract.wasm", {"count": 4})
    run_tests([my_check], client, code_hash, address)
"""

from secret_testing.client import (
    # Core classes
    SecretCLI,
    SecretNetworkClient,
    TransactionResult,
    Wallet,
    initialize_client,
)
from secret_testing.config import Settings
from secret_testing.counter import increment_tx, query_count, reset_tx
from secret_testing.deployer import (
    ContractDeployer,
    ContractReference,
    initialize_contract,
    unique_label,
)
from secret_testing.exceptions import (
    BalanceError,
    CLIError,
    ContractDeployError,
    FaucetError,
    IntegrationAssertionError,
    LCDError,
    QueryError,
    SecretTestingError,
    TransactionError,
    TransactionTimeoutError,
)
from secret_testing.faucet import fill_up_from_faucet, get_from_faucet
from secret_testing.runner import (
    assert_attribute_emitted,
    assert_equal,
    assert_raises,
    assert_transaction_failure,
    assert_transaction_success,
    run_test_function,
    run_tests,
)

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "SecretCLI",
    "SecretNetworkClient",
    "TransactionResult",
    "Wallet",
    "ContractDeployer",
    "ContractReference",
    "Settings",
    # Helper functions
    "initialize_client",
    "fill_up_from_faucet",
    "get_from_faucet",
    "initialize_contract",
    "unique_label",
    "query_count",
    "increment_tx",
    "reset_tx",
    "run_test_function",
    "run_tests",
    # Assertion helpers
    "assert_equal",
    "assert_transaction_success",
    "assert_transaction_failure",
    "assert_attribute_emitted",
    "assert_raises",
    # Exceptions
    "SecretTestingError",
    "CLIError",
    "LCDError",
    "BalanceError",
    "FaucetError",
    "ContractDeployError",
    "TransactionError",
    "TransactionTimeoutError",
    "QueryError",
    "IntegrationAssertionError",
    # Metadata
    "__version__",
]
