import itertools

import pytest

from secret_testing.client import SecretCLI, SecretNetworkClient, TransactionResult, Wallet
from secret_testing.exceptions import QueryError
from secret_testing.mock import MockCLI, MockLCD

LCD_URL = "http://localhost:1317"
CHAIN_ID = "secretdev-1"
ALICE = "secret1alice0000000000000000000000000000000"
CODE_HASH = "af" * 32
CONTRACT = "secret1contract00000000000000000000000000000"


@pytest.fixture
def lcd():
    with MockLCD() as mock:
        mock.patch_requests()
        yield mock


@pytest.fixture
def cli_mock():
    with MockCLI() as mock:
        mock.patch_subprocess()
        yield mock


@pytest.fixture
def cli(tmp_path):
    secretcli = SecretCLI(home_dir=str(tmp_path / "keyring"))
    yield secretcli
    secretcli.cleanup()


@pytest.fixture
def client(cli):
    return SecretNetworkClient(
        LCD_URL,
        CHAIN_ID,
        Wallet("it-key", ALICE),
        cli,
        tx_timeout=0.2,
        tx_poll_interval=0,
    )


@pytest.fixture
def wasm_file(tmp_path):
    path = tmp_path / "contract.wasm"
    path.write_bytes(b"\x00asm\x01\x00\x00\x00counter")
    return path


# ---------------------------------------------------------------------------
# In-memory counter chain
# ---------------------------------------------------------------------------

class FakeSecretClient:
    """Speaks the SecretNetworkClient interface against an in-memory counter chain."""

    def __init__(self, address=ALICE, *, chain=None, balances=None, increment_step=1):
        self.wallet = Wallet("owner", address)
        self.chain = chain if chain is not None else {
            "codes": {},
            "contracts": {},
            "labels": set(),
            "transfers": [],
            "tx_ids": itertools.count(1),
        }
        self.balance_readings = list(balances) if balances else [10 ** 9]
        self.increment_step = increment_step
        self.closed = False

    @property
    def address(self):
        return self.wallet.address

    def balance(self, denom=None):
        if len(self.balance_readings) > 1:
            return self.balance_readings.pop(0)
        return self.balance_readings[0]

    def _tx(self, *, code=0, attributes=None, raw_log="", gas_wanted=200_000, gas_used=40_000):
        logs = []
        if attributes:
            logs.append({
                "msg_index": 0,
                "events": [{
                    "type": "message",
                    "attributes": [{"key": k, "value": v} for k, v in attributes.items()],
                }],
            })
        return TransactionResult(
            txhash=f"TX{next(self.chain['tx_ids']):06d}",
            code=code,
            raw_log=raw_log,
            logs=logs,
            gas_wanted=gas_wanted,
            gas_used=gas_used,
        )

    def store_code(self, wasm_path, *, gas):
        code_id = len(self.chain["codes"]) + 1
        self.chain["codes"][code_id] = f"{code_id:02x}" * 32
        return self._tx(attributes={"action": "store-code", "code_id": str(code_id)}, gas_wanted=gas)

    def code_hash_by_code_id(self, code_id):
        return self.chain["codes"].get(code_id)

    def instantiate_contract(self, code_id, init_msg, *, label, code_hash, gas):
        if label in self.chain["labels"]:
            return self._tx(code=2, raw_log=f"label {label} already exists")
        self.chain["labels"].add(label)
        address = f"secret1contract{len(self.chain['contracts']):030d}"
        self.chain["contracts"][address] = {
            "code_hash": code_hash,
            "count": init_msg["count"],
            "owner": self.address,
        }
        return self._tx(attributes={"contract_address": address}, gas_wanted=gas)

    def _contract(self, address, code_hash):
        contract = self.chain["contracts"].get(address)
        if contract is None or contract["code_hash"] != code_hash:
            return None
        return contract

    def execute_contract(self, address, code_hash, msg, *, gas, sent_funds=None):
        contract = self._contract(address, code_hash)
        if contract is None:
            return self._tx(code=3, raw_log="contract not found", gas_wanted=gas)
        if "increment" in msg:
            contract["count"] += self.increment_step
        elif "reset" in msg:
            if self.address != contract["owner"]:
                return self._tx(code=4, raw_log="Unauthorized", gas_wanted=gas)
            contract["count"] = msg["reset"]["count"]
        return self._tx(attributes={"contract_address": address}, gas_wanted=gas)

    def query_contract(self, address, code_hash, query):
        contract = self._contract(address, code_hash)
        if contract is None:
            raise QueryError(f"No contract {address} with hash {code_hash}")
        return {"count": contract["count"]}

    def another_client(self, name=None):
        index = len(self.chain["transfers"])
        return FakeSecretClient(f"secret1stranger{index:028d}", chain=self.chain)

    def send(self, recipient, amount, denom=None):
        self.chain["transfers"].append((self.address, recipient, amount))
        return self._tx()

    def close(self):
        self.closed = True


@pytest.fixture
def fake_client_factory():
    return FakeSecretClient


@pytest.fixture
def fake_client():
    return FakeSecretClient()
