"""
secret_testing.exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~

Exception hierarchy for secret-testing. Everything raised by this package
derives from :class:`SecretTestingError`.
"""


class SecretTestingError(Exception):
    """Base exception for secret-testing errors."""


class CLIError(SecretTestingError):
    """Raised when a ``secretcli`` invocation fails or prints garbage."""


class LCDError(SecretTestingError):
    """Raised when an LCD REST request fails."""


class BalanceError(SecretTestingError):
    """Raised when an account balance cannot be read."""


class FaucetError(SecretTestingError):
    """Raised when the faucet could not fund an account."""


class ContractDeployError(SecretTestingError):
    """Raised when contract upload or instantiation fails."""


class TransactionError(SecretTestingError):
    """Raised when a transaction fails unexpectedly."""


class TransactionTimeoutError(TransactionError):
    """Raised when a broadcast transaction is not included in a block in time."""


class QueryError(SecretTestingError):
    """Raised when a contract query fails."""


class IntegrationAssertionError(SecretTestingError, AssertionError):
    """Raised when a test assertion fails."""
