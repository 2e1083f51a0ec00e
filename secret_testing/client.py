"""
secret_testing.client
~~~~~~~~~~~~~~~~~~~~~

Wallet and network client for a Secret Network node.

Key management, signing and the encryption of contract messages are left to
``secretcli``, which is driven as a subprocess. Balances, code hashes and
transaction lookups go straight to the node's LCD REST API.
"""

import json
import logging
import subprocess
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from secret_testing.exceptions import (
    BalanceError,
    CLIError,
    LCDError,
    QueryError,
    TransactionError,
    TransactionTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_LCD_URL = "http://localhost:1317"
DEFAULT_NODE_URL = "tcp://localhost:26657"
DEFAULT_CHAIN_ID = "secretdev-1"
DEFAULT_DENOM = "uscrt"
DEFAULT_GAS_PRICES = "0.1uscrt"


# ---------------------------------------------------------------------------
# TransactionResult
# ---------------------------------------------------------------------------

@dataclass
class TransactionResult:
    """Parsed ``tx_response`` of a Secret Network transaction."""

    txhash: str
    code: int = 0
    raw_log: str = ""
    logs: List[Dict[str, Any]] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)
    gas_wanted: int = 0
    gas_used: int = 0
    height: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tx_response(cls, data: Dict[str, Any]) -> "TransactionResult":
        return cls(
            txhash=data.get("txhash", ""),
            code=int(data.get("code") or 0),
            raw_log=data.get("raw_log") or "",
            logs=data.get("logs") or [],
            events=data.get("events") or [],
            gas_wanted=int(data.get("gas_wanted") or 0),
            gas_used=int(data.get("gas_used") or 0),
            height=int(data.get("height") or 0),
            raw=data,
        )

    @property
    def succeeded(self) -> bool:
        return self.code == 0

    @property
    def array_log(self) -> List[Dict[str, Any]]:
        """Flatten the message logs into ``{msg_index, type, key, value}`` entries.

        Nodes on Cosmos SDK 0.50+ leave ``logs`` empty and only fill the
        top-level ``events``; those are used instead, with ``msg_index`` taken
        from the event attributes when present.
        """
        entries: List[Dict[str, Any]] = []
        if self.logs:
            for log in self.logs:
                msg_index = int(log.get("msg_index") or 0)
                for event in log.get("events", []):
                    for attr in event.get("attributes", []):
                        entries.append({
                            "msg_index": msg_index,
                            "type": event.get("type", ""),
                            "key": attr.get("key", ""),
                            "value": attr.get("value", ""),
                        })
            return entries

        for event in self.events:
            attributes = event.get("attributes", [])
            msg_index = None
            for attr in attributes:
                if attr.get("key") == "msg_index":
                    msg_index = int(attr.get("value") or 0)
            for attr in attributes:
                entries.append({
                    "msg_index": msg_index,
                    "type": event.get("type", ""),
                    "key": attr.get("key", ""),
                    "value": attr.get("value", ""),
                })
        return entries

    def find_attribute(self, key: str, *, event_type: Optional[str] = None) -> Optional[str]:
        """Return the first attribute value stored under *key*, or None."""
        for entry in self.array_log:
            if entry["key"] != key:
                continue
            if event_type is not None and entry["type"] != event_type:
                continue
            return entry["value"]
        return None


# ---------------------------------------------------------------------------
# Wallet / SecretCLI
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Wallet:
    """A key held in a ``secretcli`` keyring."""

    name: str
    address: str
    mnemonic: str = field(default="", repr=False)


class SecretCLI:
    """Thin wrapper around the ``secretcli`` binary.

    Keys live in a throw-away keyring under a temporary home directory unless
    *home_dir* is given. Call :meth:`cleanup` (or use the instance as a
    context manager) to remove it.
    """

    def __init__(
        self,
        *,
        binary: str = "secretcli",
        node: str = DEFAULT_NODE_URL,
        chain_id: str = DEFAULT_CHAIN_ID,
        home_dir: Optional[str] = None,
        keyring_backend: str = "test",
        gas_prices: str = DEFAULT_GAS_PRICES,
        timeout: float = 60.0,
    ) -> None:
        self.binary = binary
        self.node = node
        self.chain_id = chain_id
        self.keyring_backend = keyring_backend
        self.gas_prices = gas_prices
        self.timeout = timeout

        self._tmp_dir: Optional[tempfile.TemporaryDirectory] = None
        if home_dir:
            self.home_dir = Path(home_dir)
        else:
            self._tmp_dir = tempfile.TemporaryDirectory(prefix="secretcli-home-")
            self.home_dir = Path(self._tmp_dir.name)

    # -- process -------------------------------------------------------------

    def run(self, args: List[str], *, timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        """Run ``secretcli <args>`` against this keyring home."""
        cmd = [self.binary] + args + ["--home", str(self.home_dir)]
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError as exc:
            raise CLIError(
                f"'{self.binary}' not found on PATH. Install secretcli to talk to the node."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CLIError(f"secretcli {' '.join(args[:3])} timed out") from exc

    def run_json(self, args: List[str]) -> Any:
        """Run a command with ``--output json`` and parse what it prints."""
        result = self.run(args + ["--output", "json"])
        if result.returncode != 0:
            raise CLIError(
                f"secretcli {' '.join(args[:3])} failed (exit {result.returncode}): "
                f"{(result.stderr or result.stdout).strip()}"
            )
        return _parse_json_output(result.stdout, result.stderr)

    # -- keys ----------------------------------------------------------------

    def add_key(self, name: str) -> Wallet:
        """Generate a new random key in the keyring."""
        data = self.run_json(["keys", "add", name, "--keyring-backend", self.keyring_backend])
        if not isinstance(data, dict) or not data.get("address"):
            raise CLIError(f"secretcli keys add returned no address: {data!r}")
        return Wallet(name=data.get("name", name), address=data["address"], mnemonic=data.get("mnemonic", ""))

    # -- transactions --------------------------------------------------------

    def broadcast(self, args: List[str], *, sender: str, gas: int) -> str:
        """Sign and broadcast a ``tx`` command, returning the transaction hash.

        Uses sync broadcast mode, so a non-zero code here is a CheckTx
        rejection and the transaction never reached a block.
        """
        data = self.run_json(["tx"] + args + [
            "--from", sender,
            "--chain-id", self.chain_id,
            "--node", self.node,
            "--keyring-backend", self.keyring_backend,
            "--gas", str(gas),
            "--gas-prices", self.gas_prices,
            "--broadcast-mode", "sync",
            "--yes",
        ])
        if not isinstance(data, dict):
            raise CLIError(f"Unexpected broadcast output: {data!r}")
        code = int(data.get("code") or 0)
        if code != 0:
            raise TransactionError(
                f"Transaction rejected by node (code {code}): {data.get('raw_log', '')}"
            )
        txhash = data.get("txhash")
        if not txhash:
            raise CLIError(f"Broadcast returned no txhash: {data!r}")
        return txhash

    # -- queries -------------------------------------------------------------

    def query_contract(self, address: str, query: Dict[str, Any]) -> Any:
        """Run an encrypted smart query through ``secretcli query compute query``."""
        return self.run_json([
            "query", "compute", "query", address, json.dumps(query),
            "--node", self.node,
        ])

    # -- lifecycle -----------------------------------------------------------

    def cleanup(self) -> None:
        if self._tmp_dir is not None:
            self._tmp_dir.cleanup()
            self._tmp_dir = None

    def __enter__(self) -> "SecretCLI":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()


# ---------------------------------------------------------------------------
# SecretNetworkClient
# ---------------------------------------------------------------------------

class SecretNetworkClient:
    """A wallet bound to an LCD endpoint and chain id.

    Usage::

        client = initialize_client("http://localhost:1317", "secretdev-1")
        print(client.address, client.balance())
        tx = client.execute_contract(address, code_hash, {"increment": {}}, gas=200_000)
    """

    def __init__(
        self,
        url: str,
        chain_id: str,
        wallet: Wallet,
        cli: SecretCLI,
        *,
        denom: str = DEFAULT_DENOM,
        request_timeout: float = 15.0,
        tx_timeout: float = 60.0,
        tx_poll_interval: float = 1.0,
    ) -> None:
        self.url = url.rstrip("/")
        self.chain_id = chain_id
        self.wallet = wallet
        self.cli = cli
        self.denom = denom
        self.request_timeout = request_timeout
        self.tx_timeout = tx_timeout
        self.tx_poll_interval = tx_poll_interval

    @property
    def address(self) -> str:
        return self.wallet.address

    # -- LCD -----------------------------------------------------------------

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        try:
            return requests.get(self.url + path, params=params, timeout=self.request_timeout)
        except requests.RequestException as exc:
            raise LCDError(f"LCD request {path} failed: {exc}") from exc

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self._get(path, params)
        if resp.status_code != 200:
            raise LCDError(f"LCD request {path} returned HTTP {resp.status_code}: {resp.text}")
        return resp.json()

    def balance(self, denom: Optional[str] = None) -> int:
        """Return this wallet's balance in the smallest denomination."""
        denom = denom or self.denom
        data = self._get_json(
            f"/cosmos/bank/v1beta1/balances/{self.address}/by_denom",
            params={"denom": denom},
        )
        amount = (data.get("balance") or {}).get("amount")
        if amount is None:
            raise BalanceError(f"Failed to get balance for address: {self.address}")
        return int(amount)

    def code_hash_by_code_id(self, code_id: int) -> Optional[str]:
        data = self._get_json(f"/compute/v1beta1/code_hash/by_code_id/{code_id}")
        return data.get("code_hash") or None

    def code_hash_by_contract_address(self, address: str) -> Optional[str]:
        resp = self._get(f"/compute/v1beta1/code_hash/by_contract_address/{address}")
        if resp.status_code != 200:
            return None
        return resp.json().get("code_hash") or None

    def get_tx(self, txhash: str) -> Optional[TransactionResult]:
        """Look a transaction up by hash; None while it is not yet in a block."""
        resp = self._get(f"/cosmos/tx/v1beta1/txs/{txhash}")
        if resp.status_code == 200:
            return TransactionResult.from_tx_response(resp.json().get("tx_response") or {})
        # Older nodes answer 400/500 instead of 404 for unknown hashes
        if resp.status_code == 404 or "not found" in resp.text.lower():
            return None
        raise LCDError(f"Transaction lookup {txhash} returned HTTP {resp.status_code}: {resp.text}")

    def wait_for_tx(self, txhash: str, *, timeout: Optional[float] = None) -> TransactionResult:
        """Block until *txhash* is included in a block."""
        timeout = self.tx_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            result = self.get_tx(txhash)
            if result is not None:
                return result
            if time.monotonic() >= deadline:
                raise TransactionTimeoutError(
                    f"Transaction {txhash} was not included within {timeout}s"
                )
            time.sleep(self.tx_poll_interval)

    # -- transactions --------------------------------------------------------

    def _broadcast(self, args: List[str], *, gas: int) -> TransactionResult:
        txhash = self.cli.broadcast(args, sender=self.wallet.name, gas=gas)
        logger.debug("Broadcast %s, waiting for inclusion", txhash)
        return self.wait_for_tx(txhash)

    def store_code(self, wasm_path: Union[str, Path], *, gas: int) -> TransactionResult:
        return self._broadcast(["compute", "store", str(wasm_path)], gas=gas)

    def instantiate_contract(
        self,
        code_id: int,
        init_msg: Dict[str, Any],
        *,
        label: str,
        code_hash: str,
        gas: int,
    ) -> TransactionResult:
        return self._broadcast([
            "compute", "instantiate", str(code_id), json.dumps(init_msg),
            "--label", label,
            "--code-hash", code_hash,
        ], gas=gas)

    def execute_contract(
        self,
        address: str,
        code_hash: str,
        msg: Dict[str, Any],
        *,
        gas: int,
        sent_funds: Optional[str] = None,
    ) -> TransactionResult:
        """Execute *msg* on a contract and wait for the transaction to land.

        The returned result may carry a non-zero code if the contract
        rejected the message; callers decide whether that is an error.
        """
        args = ["compute", "execute", address, json.dumps(msg), "--code-hash", code_hash]
        if sent_funds:
            args += ["--amount", sent_funds]
        return self._broadcast(args, gas=gas)

    def send(self, recipient: str, amount: int, denom: Optional[str] = None, *, gas: int = 100_000) -> TransactionResult:
        """Transfer tokens from this wallet to *recipient*."""
        coins = f"{amount}{denom or self.denom}"
        tx = self._broadcast(["bank", "send", self.wallet.name, recipient, coins], gas=gas)
        if not tx.succeeded:
            raise TransactionError(f"Transfer of {coins} to {recipient} failed: {tx.raw_log}")
        return tx

    # -- queries -------------------------------------------------------------

    def query_contract(self, address: str, code_hash: str, query: Dict[str, Any]) -> Any:
        """Send a read-only query to the contract at (*code_hash*, *address*)."""
        actual_hash = self.code_hash_by_contract_address(address)
        if actual_hash is None:
            raise QueryError(f"No contract found at address {address}")
        if _normalize_hash(actual_hash) != _normalize_hash(code_hash):
            raise QueryError(
                f"Code hash mismatch for {address}: expected {code_hash}, node reports {actual_hash}"
            )

        try:
            response = self.cli.query_contract(address, query)
        except CLIError as exc:
            raise QueryError(f"Query {query!r} against {address} failed: {exc}") from exc

        if isinstance(response, dict) and ("err" in response or "error" in response):
            raise QueryError(
                f"Query failed with the following err: {json.dumps(response)}"
            )
        return response

    # -- identities ----------------------------------------------------------

    def another_client(self, name: Optional[str] = None) -> "SecretNetworkClient":
        """Create a second identity in the same keyring, bound to the same node."""
        wallet = self.cli.add_key(name or _random_key_name())
        logger.info("Created additional wallet %s", wallet.address)
        return SecretNetworkClient(
            self.url,
            self.chain_id,
            wallet,
            self.cli,
            denom=self.denom,
            request_timeout=self.request_timeout,
            tx_timeout=self.tx_timeout,
            tx_poll_interval=self.tx_poll_interval,
        )

    def close(self) -> None:
        self.cli.cleanup()

    def __enter__(self) -> "SecretNetworkClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SecretNetworkClient({self.address!r}, chain_id={self.chain_id!r})"


def initialize_client(
    endpoint: str = DEFAULT_LCD_URL,
    chain_id: str = DEFAULT_CHAIN_ID,
    *,
    cli: Optional[SecretCLI] = None,
    **client_kwargs: Any,
) -> SecretNetworkClient:
    """Generate a fresh wallet and return a client bound to *endpoint*."""
    cli = cli or SecretCLI(chain_id=chain_id)
    wallet = cli.add_key(_random_key_name())
    client = SecretNetworkClient(endpoint, chain_id, wallet, cli, **client_kwargs)
    logger.info("Initialized client with wallet address: %s", wallet.address)
    return client


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------

def _random_key_name() -> str:
    return f"it-{uuid.uuid4().hex[:12]}"


def _normalize_hash(code_hash: str) -> str:
    code_hash = code_hash.strip().lower()
    return code_hash[2:] if code_hash.startswith("0x") else code_hash


def _parse_json_output(stdout: str, stderr: str) -> Any:
    """Parse JSON printed by secretcli.

    Some commands (``keys add`` among them) write their JSON to stderr, and
    either stream may carry warning lines around the payload.
    """
    for stream in (stdout, stderr):
        text = (stream or "").strip()
        if not text:
            continue
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
        for line in reversed(text.splitlines()):
            stripped = line.strip()
            if not stripped.startswith(("{", "[")):
                continue
            try:
                return json.loads(stripped)
            except json.JSONDecodeError:
                continue
    raise CLIError(f"Could not parse secretcli output as JSON: {(stdout or stderr or '').strip()!r}")
