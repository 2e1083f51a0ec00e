"""
secret_testing.runner
~~~~~~~~~~~~~~~~~~~~~

Sequential test runner and the assertion helpers used by test functions.

A test function takes ``(client, contract_hash, contract_address)`` and
raises on failure. Tests run one after another and the first failure aborts
the whole run.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Sequence, Type

from secret_testing.client import SecretNetworkClient, TransactionResult
from secret_testing.exceptions import IntegrationAssertionError

logger = logging.getLogger(__name__)

Tester = Callable[[SecretNetworkClient, str, str], Any]


def run_test_function(
    tester: Tester,
    client: SecretNetworkClient,
    contract_hash: str,
    contract_address: str,
) -> None:
    name = getattr(tester, "__name__", repr(tester))
    logger.info("Testing %s", name)
    try:
        tester(client, contract_hash, contract_address)
    except Exception:
        logger.error("[FAILED] %s", name)
        raise
    logger.info("[SUCCESS] %s", name)


def run_tests(
    testers: Sequence[Tester],
    client: SecretNetworkClient,
    contract_hash: str,
    contract_address: str,
) -> List[str]:
    """Run *testers* in order and return the names of those that passed."""
    passed: List[str] = []
    for tester in testers:
        run_test_function(tester, client, contract_hash, contract_address)
        passed.append(getattr(tester, "__name__", repr(tester)))
    return passed


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------

def assert_equal(actual: Any, expected: Any, message: Optional[str] = None) -> None:
    if actual != expected:
        raise IntegrationAssertionError(message or f"Expected {expected!r}, got {actual!r}")


def assert_transaction_success(result: TransactionResult) -> None:
    """Assert that a transaction was included with code 0."""
    if not result.succeeded:
        raise IntegrationAssertionError(
            f"Expected transaction {result.txhash} to succeed, "
            f"but it failed with code {result.code}.\n"
            f"Log: {result.raw_log}"
        )


def assert_transaction_failure(result: TransactionResult) -> None:
    """Assert that a transaction failed.

    Useful for testing that invalid operations are correctly rejected.
    """
    if result.succeeded:
        raise IntegrationAssertionError(
            f"Expected transaction {result.txhash} to fail, but it succeeded.\n"
            f"Events: {json.dumps(result.array_log)}"
        )


def assert_attribute_emitted(
    result: TransactionResult,
    key: str,
    *,
    value: Optional[str] = None,
    event_type: Optional[str] = None,
) -> str:
    """Assert that the transaction emitted an attribute *key* (optionally equal to *value*).

    Returns the attribute value.
    """
    for entry in result.array_log:
        if entry["key"] != key:
            continue
        if event_type is not None and entry["type"] != event_type:
            continue
        if value is not None and entry["value"] != value:
            continue
        return entry["value"]

    raise IntegrationAssertionError(
        f"Attribute '{key}' not found in transaction {result.txhash}.\n"
        f"Events: {json.dumps(result.array_log)}"
    )


def assert_raises(exc_type: Type[BaseException], func: Callable[..., Any], *args: Any, **kwargs: Any) -> BaseException:
    """Assert that ``func(*args, **kwargs)`` raises *exc_type*; return the exception."""
    try:
        func(*args, **kwargs)
    except exc_type as exc:
        return exc
    raise IntegrationAssertionError(
        f"Expected {getattr(func, '__name__', func)} to raise {exc_type.__name__}"
    )
