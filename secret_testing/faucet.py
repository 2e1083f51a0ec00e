"""
secret_testing.faucet
~~~~~~~~~~~~~~~~~~~~~

Funding test wallets from the local dev-chain faucet.
"""

import logging
import time
from typing import Optional

import requests

from secret_testing.client import SecretNetworkClient
from secret_testing.exceptions import FaucetError

logger = logging.getLogger(__name__)

DEFAULT_FAUCET_URL = "http://localhost:5000"


def get_from_faucet(faucet_url: str, address: str, *, timeout: float = 15.0) -> None:
    """Ask the faucet to credit *address*. The response body is ignored."""
    resp = requests.get(
        f"{faucet_url.rstrip('/')}/faucet",
        params={"address": address},
        timeout=timeout,
    )
    resp.raise_for_status()


def fill_up_from_faucet(
    client: SecretNetworkClient,
    target_balance: int,
    *,
    faucet_url: str = DEFAULT_FAUCET_URL,
    retry_delay: float = 0.0,
    max_attempts: Optional[int] = None,
) -> int:
    """Request tokens until the client's balance reaches *target_balance*.

    Faucet failures are logged and retried; the faucet is expected to come
    back eventually. With the default ``max_attempts=None`` the loop never
    gives up, otherwise :class:`FaucetError` is raised once that many
    requests have been made without reaching the target. Balance lookup
    errors are not retried.

    Returns the final balance.
    """
    balance = client.balance()
    attempts = 0
    while balance < target_balance:
        if max_attempts is not None and attempts >= max_attempts:
            raise FaucetError(
                f"Balance of {client.address} is {balance} after {attempts} faucet "
                f"requests, wanted {target_balance}"
            )
        attempts += 1
        try:
            get_from_faucet(faucet_url, client.address)
        except requests.RequestException as exc:
            logger.error("failed to get tokens from faucet: %s", exc)
        if retry_delay:
            time.sleep(retry_delay)
        balance = client.balance()

    logger.info("got tokens from faucet: %s", balance)
    return balance
