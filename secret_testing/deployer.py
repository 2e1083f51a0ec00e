"""
secret_testing.deployer
~~~~~~~~~~~~~~~~~~~~~~~

Upload and instantiate compiled CosmWasm contracts.
"""

import hashlib
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, NamedTuple, Union

from secret_testing.client import SecretNetworkClient
from secret_testing.exceptions import ContractDeployError

logger = logging.getLogger(__name__)

UPLOAD_GAS = 5_000_000
INSTANTIATE_GAS = 1_000_000


class ContractReference(NamedTuple):
    """Where a deployed contract lives. Unpacks as ``(code_hash, address)``."""

    code_hash: str
    address: str


def unique_label(prefix: str = "counter") -> str:
    """Contract labels must be unique chain-wide; add a random suffix."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class ContractDeployer:
    """Deploy WASM contracts with a :class:`SecretNetworkClient`.

    Usage::

        deployer = ContractDeployer(client)
        code_hash, address = deployer.deploy("contract.wasm", {"count": 4})
    """

    def __init__(
        self,
        client: SecretNetworkClient,
        *,
        upload_gas: int = UPLOAD_GAS,
        instantiate_gas: int = INSTANTIATE_GAS,
    ) -> None:
        self.client = client
        self.upload_gas = upload_gas
        self.instantiate_gas = instantiate_gas

    def upload(self, wasm_path: Union[str, Path]) -> int:
        """Store the bytecode on chain and return its code id."""
        wasm_path = Path(wasm_path).resolve()
        if not wasm_path.exists():
            raise ContractDeployError(f"WASM file not found: {wasm_path}")
        wasm_code = wasm_path.read_bytes()
        if not wasm_code:
            raise ContractDeployError(f"WASM file is empty: {wasm_path}")

        logger.info(
            "Uploading contract (%d bytes, sha256 %s)",
            len(wasm_code),
            hashlib.sha256(wasm_code).hexdigest(),
        )
        receipt = self.client.store_code(wasm_path, gas=self.upload_gas)
        if not receipt.succeeded:
            logger.error("Failed to get code id: %s", receipt.raw_log)
            raise ContractDeployError(
                f"Failed to upload contract (code {receipt.code}): {receipt.raw_log}"
            )

        value = receipt.find_attribute("code_id")
        if value is None:
            raise ContractDeployError(
                f"Upload transaction {receipt.txhash} emitted no code_id attribute"
            )
        try:
            code_id = int(value)
        except ValueError:
            raise ContractDeployError(f"Malformed code_id in upload receipt: {value!r}")

        logger.info("Contract codeId: %d", code_id)
        return code_id

    def code_hash(self, code_id: int) -> str:
        code_hash = self.client.code_hash_by_code_id(code_id)
        if code_hash is None:
            raise ContractDeployError(f"Failed to get code hash for code id {code_id}")
        logger.info("Contract hash: %s", code_hash)
        return code_hash

    def instantiate(
        self,
        code_id: int,
        code_hash: str,
        init_msg: Dict[str, Any],
        *,
        label: str,
    ) -> str:
        """Instantiate a stored code and return the new contract's address."""
        tx = self.client.instantiate_contract(
            code_id,
            init_msg,
            label=label,
            code_hash=code_hash,
            gas=self.instantiate_gas,
        )
        if not tx.succeeded:
            raise ContractDeployError(
                f"Failed to instantiate the contract with the following error {tx.raw_log}"
            )

        address = tx.find_attribute("contract_address", event_type="message")
        if not address:
            raise ContractDeployError(
                f"Instantiate transaction {tx.txhash} emitted no contract_address"
            )
        logger.info("Contract address: %s", address)
        return address

    def deploy(
        self,
        wasm_path: Union[str, Path],
        init_msg: Dict[str, Any],
        *,
        label_prefix: str = "counter",
    ) -> ContractReference:
        """Upload, resolve the code hash and instantiate in one go."""
        code_id = self.upload(wasm_path)
        code_hash = self.code_hash(code_id)
        address = self.instantiate(code_id, code_hash, init_msg, label=unique_label(label_prefix))
        return ContractReference(code_hash, address)


def initialize_contract(
    client: SecretNetworkClient,
    contract_path: Union[str, Path],
    init_msg: Dict[str, Any],
) -> ContractReference:
    """Store and instantiate the contract at *contract_path*."""
    return ContractDeployer(client).deploy(contract_path, init_msg)
