"""
secret_testing.config
~~~~~~~~~~~~~~~~~~~~~

Run settings, read from the environment (and a ``.env`` file if present).
Defaults target a LocalSecret dev chain on localhost.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from secret_testing.client import DEFAULT_CHAIN_ID, DEFAULT_GAS_PRICES, DEFAULT_LCD_URL, DEFAULT_NODE_URL
from secret_testing.faucet import DEFAULT_FAUCET_URL


@dataclass
class Settings:
    lcd_url: str = DEFAULT_LCD_URL
    node_url: str = DEFAULT_NODE_URL
    chain_id: str = DEFAULT_CHAIN_ID
    faucet_url: str = DEFAULT_FAUCET_URL
    contract_path: str = "contract.wasm"
    target_balance: int = 100_000_000
    secretcli: str = "secretcli"
    gas_prices: str = DEFAULT_GAS_PRICES
    faucet_retry_delay: float = 0.0
    faucet_max_attempts: Optional[int] = None
    tx_timeout: float = 60.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> "Settings":
        """Build settings from *env* (default ``os.environ``)."""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ if env is None else env
        defaults = cls()

        max_attempts = env.get("FAUCET_MAX_ATTEMPTS", "")
        return cls(
            lcd_url=env.get("SECRET_LCD_URL", defaults.lcd_url),
            node_url=env.get("SECRET_NODE_URL", defaults.node_url),
            chain_id=env.get("SECRET_CHAIN_ID", defaults.chain_id),
            faucet_url=env.get("FAUCET_URL", defaults.faucet_url),
            contract_path=env.get("CONTRACT_PATH", defaults.contract_path),
            target_balance=int(env.get("TARGET_BALANCE", defaults.target_balance)),
            secretcli=env.get("SECRETCLI", defaults.secretcli),
            gas_prices=env.get("SECRET_GAS_PRICES", defaults.gas_prices),
            faucet_retry_delay=float(env.get("FAUCET_RETRY_DELAY", defaults.faucet_retry_delay)),
            faucet_max_attempts=int(max_attempts) if max_attempts else None,
            tx_timeout=float(env.get("TX_TIMEOUT", defaults.tx_timeout)),
            log_level=env.get("SECRET_LOG_LEVEL", defaults.log_level).upper(),
        )
