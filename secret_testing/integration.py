"""
secret_testing.integration
~~~~~~~~~~~~~~~~~~~~~~~~~~

End-to-end integration run for the counter contract.

    bootstrap wallet -> fund from faucet -> upload + instantiate -> run tests

Run it with ``secret-testing`` or ``python -m secret_testing`` against a
LocalSecret node. Any failure raises out of :func:`main`.
"""

import argparse
import logging
from typing import List, Optional, Sequence, Tuple

from secret_testing.client import SecretCLI, SecretNetworkClient, initialize_client
from secret_testing.config import Settings
from secret_testing.counter import EXECUTE_GAS, increment_tx, query_count, reset_tx
from secret_testing.deployer import initialize_contract
from secret_testing.exceptions import IntegrationAssertionError, QueryError
from secret_testing.faucet import fill_up_from_faucet
from secret_testing.runner import (
    Tester,
    assert_equal,
    assert_raises,
    assert_transaction_failure,
    run_tests,
)

logger = logging.getLogger(__name__)

INIT_COUNT = 4
STRESS_LOAD = 10
# Enough for a handful of transactions by the second wallet
SECOND_WALLET_FUNDS = 1_000_000


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

def initialize_and_upload_contract(settings: Settings) -> Tuple[SecretNetworkClient, str, str]:
    cli = SecretCLI(
        binary=settings.secretcli,
        node=settings.node_url,
        chain_id=settings.chain_id,
        gas_prices=settings.gas_prices,
    )
    client = initialize_client(settings.lcd_url, settings.chain_id, cli=cli, tx_timeout=settings.tx_timeout)
    try:
        contract_hash, contract_address = _fund_and_deploy(client, settings)
    except Exception:
        client.close()
        raise
    return client, contract_hash, contract_address


def _fund_and_deploy(client: SecretNetworkClient, settings: Settings) -> Tuple[str, str]:
    fill_up_from_faucet(
        client,
        settings.target_balance,
        faucet_url=settings.faucet_url,
        retry_delay=settings.faucet_retry_delay,
        max_attempts=settings.faucet_max_attempts,
    )
    contract = initialize_contract(client, settings.contract_path, {"count": INIT_COUNT})
    return contract.code_hash, contract.address


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_count_on_initialization(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    count = query_count(client, contract_hash, contract_address)
    assert_equal(
        count,
        INIT_COUNT,
        f"The counter on initialization expected to be {INIT_COUNT} instead of {count}",
    )


def test_increment_stress(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    on_start = query_count(client, contract_hash, contract_address)

    for _ in range(STRESS_LOAD):
        increment_tx(client, contract_hash, contract_address)

    after_stress = query_count(client, contract_hash, contract_address)
    assert_equal(
        after_stress - on_start,
        STRESS_LOAD,
        f"After running stress test the counter expected to be {on_start + STRESS_LOAD} "
        f"instead of {after_stress}",
    )


def test_gas_limits(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    """An increment has to stay within its gas limit."""
    tx = increment_tx(client, contract_hash, contract_address)
    if not 0 < tx.gas_used <= EXECUTE_GAS:
        raise IntegrationAssertionError(
            f"Increment used {tx.gas_used} gas, expected between 1 and {EXECUTE_GAS}"
        )


def test_reset_unauthorized(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    before = query_count(client, contract_hash, contract_address)

    stranger = client.another_client()
    client.send(stranger.address, SECOND_WALLET_FUNDS)
    tx = stranger.execute_contract(contract_address, contract_hash, {"reset": {"count": 0}}, gas=EXECUTE_GAS)
    assert_transaction_failure(tx)

    after = query_count(client, contract_hash, contract_address)
    assert_equal(after, before, f"Unauthorized reset changed the counter from {before} to {after}")


def test_reset_by_owner(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    reset_tx(client, contract_hash, contract_address, 0)
    count = query_count(client, contract_hash, contract_address)
    assert_equal(count, 0, f"The counter after reset expected to be 0 instead of {count}")


def test_query_with_wrong_code_hash_fails(client: SecretNetworkClient, contract_hash: str, contract_address: str) -> None:
    wrong_hash = "0" * 64 if contract_hash.lower() != "0" * 64 else "f" * 64
    assert_raises(QueryError, query_count, client, wrong_hash, contract_address)


DEFAULT_TESTS: List[Tester] = [
    test_count_on_initialization,
    test_increment_stress,
    test_gas_limits,
    test_reset_unauthorized,
    test_reset_by_owner,
    test_query_with_wrong_code_hash_fails,
]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def run(
    settings: Optional[Settings] = None,
    *,
    client: Optional[SecretNetworkClient] = None,
    tests: Sequence[Tester] = DEFAULT_TESTS,
) -> List[str]:
    """Bootstrap, deploy and run *tests*. Returns the names of the passed tests.

    A pre-built *client* skips wallet creation but is still funded and closed.
    """
    settings = settings or Settings.from_env()
    if client is None:
        client, contract_hash, contract_address = initialize_and_upload_contract(settings)
    else:
        try:
            contract_hash, contract_address = _fund_and_deploy(client, settings)
        except Exception:
            client.close()
            raise

    logger.info("Running %d tests against %s", len(tests), contract_address)
    try:
        return run_tests(tests, client, contract_hash, contract_address)
    finally:
        client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secret-testing",
        description="Deploy the counter contract to a Secret Network dev chain and run its integration tests",
    )
    parser.add_argument("--lcd-url", help="LCD REST endpoint (env SECRET_LCD_URL)")
    parser.add_argument("--node", dest="node_url", help="Tendermint RPC used by secretcli (env SECRET_NODE_URL)")
    parser.add_argument("--chain-id", help="Chain id (env SECRET_CHAIN_ID)")
    parser.add_argument("--faucet-url", help="Faucet base URL (env FAUCET_URL)")
    parser.add_argument("--contract", dest="contract_path", help="Compiled contract .wasm (env CONTRACT_PATH)")
    parser.add_argument("--target-balance", type=int, help="Minimum uscrt before deploying (env TARGET_BALANCE)")
    parser.add_argument("--secretcli", help="Path to the secretcli binary (env SECRETCLI)")
    parser.add_argument("--faucet-max-attempts", type=int, help="Give up funding after this many requests")
    parser.add_argument("--log-level", help="Logging level (env SECRET_LOG_LEVEL)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    for name, value in vars(args).items():
        if value is not None:
            setattr(settings, name, value)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    run(settings)


if __name__ == "__main__":
    main()
