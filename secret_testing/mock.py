"""
secret_testing.mock
~~~~~~~~~~~~~~~~~~~

Test doubles for code that talks to a Secret Network node without running
one: :class:`MockLCD` stands in for ``requests.get`` (LCD and faucet), and
:class:`MockCLI` stands in for ``subprocess.run`` (``secretcli``).

Usage::

    with MockLCD() as lcd, MockCLI() as cli:
        lcd.add_balance("secret1alice", 100_000_000)
        cli.add_key("secret1alice")
        lcd.patch_requests()
        cli.patch_subprocess()

        client = initialize_client()
        assert client.balance() == 100_000_000
"""

import json
import subprocess
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock, patch
from urllib.parse import urlsplit

import requests

from secret_testing.exceptions import SecretTestingError


def _tx_response(
    txhash: str,
    *,
    code: int = 0,
    attributes: Optional[Dict[str, str]] = None,
    event_type: str = "message",
    raw_log: str = "",
    gas_wanted: int = 200_000,
    gas_used: int = 50_000,
    height: int = 100,
) -> Dict[str, Any]:
    events = []
    if attributes:
        events.append({
            "type": event_type,
            "attributes": [{"key": k, "value": v} for k, v in attributes.items()],
        })
    return {
        "height": str(height),
        "txhash": txhash,
        "code": code,
        "raw_log": raw_log,
        "logs": [{"msg_index": 0, "log": "", "events": events}] if events else [],
        "gas_wanted": str(gas_wanted),
        "gas_used": str(gas_used),
        "events": [],
    }


class _Entry:
    def __init__(self, key: Any, payload: Dict[str, Any], times: Optional[int]) -> None:
        self.key = key
        self.payload = payload
        self.remaining = times

    def take(self) -> Dict[str, Any]:
        if self.remaining is not None:
            self.remaining -= 1
        return self.payload

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0


# ---------------------------------------------------------------------------
# MockLCD
# ---------------------------------------------------------------------------

class MockLCD:
    """Fake LCD/faucet HTTP layer matched on URL path.

    Responses registered for the same path are served in registration
    order; one registered with ``times=N`` is used N times and then skipped.
    Unmatched paths answer 404 like a node would for an unknown resource.
    """

    def __init__(self) -> None:
        self._responses: List[_Entry] = []
        self._calls: List[Dict[str, Any]] = []
        self._patches: list = []

    def add_response(
        self,
        path: str,
        body: Any = None,
        *,
        status: int = 200,
        times: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> "MockLCD":
        """Register a response for *path*.

        If *error* is given, the request raises it instead of returning.
        """
        self._responses.append(_Entry(path, {"body": body, "status": status, "error": error}, times))
        return self

    def add_balance(self, address: str, amount: Optional[int], *, denom: str = "uscrt", times: Optional[int] = None) -> "MockLCD":
        """Convenience: the bank balance of *address*. ``amount=None`` omits the field."""
        balance = {"denom": denom}
        if amount is not None:
            balance["amount"] = str(amount)
        return self.add_response(
            f"/cosmos/bank/v1beta1/balances/{address}/by_denom",
            {"balance": balance},
            times=times,
        )

    def add_code_hash(self, code_id: int, code_hash: Optional[str]) -> "MockLCD":
        body = {"code_hash": code_hash} if code_hash is not None else {}
        return self.add_response(f"/compute/v1beta1/code_hash/by_code_id/{code_id}", body)

    def add_contract(self, address: str, code_hash: str) -> "MockLCD":
        return self.add_response(
            f"/compute/v1beta1/code_hash/by_contract_address/{address}",
            {"code_hash": code_hash},
        )

    def add_tx(self, txhash: str, *, pending_polls: int = 0, **tx_fields: Any) -> "MockLCD":
        """Register an included transaction, unknown for the first *pending_polls* lookups."""
        path = f"/cosmos/tx/v1beta1/txs/{txhash}"
        if pending_polls:
            self.add_response(
                path,
                {"code": 5, "message": f"tx not found: {txhash}"},
                status=404,
                times=pending_polls,
            )
        return self.add_response(path, {"tx_response": _tx_response(txhash, **tx_fields)})

    def add_faucet(self, *, status: int = 200, times: Optional[int] = None, error: Optional[Exception] = None) -> "MockLCD":
        return self.add_response("/faucet", "ok", status=status, times=times, error=error)

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> MagicMock:
        """Drop-in replacement for ``requests.get``."""
        path = urlsplit(url).path
        self._calls.append({"url": url, "path": path, "params": dict(params or {})})

        for entry in self._responses:
            if entry.key != path or entry.exhausted:
                continue
            payload = entry.take()
            if payload["error"] is not None:
                raise payload["error"]
            return _make_response(url, payload["status"], payload["body"])

        return _make_response(url, 404, {"code": 5, "message": f"{path} not found"})

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return list(self._calls)

    def calls_to(self, path: str) -> List[Dict[str, Any]]:
        return [c for c in self._calls if c["path"] == path]

    def assert_called(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> None:
        matching = self.calls_to(path)
        if not matching:
            raise SecretTestingError(f"Expected a request to {path!r}.\nAll calls: {self._calls}")
        if params is not None and not any(_is_subset(params, c["params"]) for c in matching):
            raise SecretTestingError(
                f"{path!r} was requested, but never with params {params!r}.\nCalls: {matching}"
            )

    def reset(self) -> None:
        """Clear recorded calls (keeps registered responses)."""
        self._calls.clear()

    def patch_requests(self) -> None:
        """Route ``requests.get`` through this mock until the context exits."""
        p = patch("requests.get", side_effect=self.get)
        self._patches.append(p)
        p.start()

    def __enter__(self) -> "MockLCD":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for p in self._patches:
            p.stop()
        self._patches.clear()


# ---------------------------------------------------------------------------
# MockCLI
# ---------------------------------------------------------------------------

class MockCLI:
    """Fake ``secretcli`` matched on command prefix (arguments after the binary).

    Usage::

        with MockCLI() as cli:
            cli.add_broadcast(["tx", "compute", "store"], "ABC123")
            cli.patch_subprocess()
    """

    def __init__(self) -> None:
        self._results: List[_Entry] = []
        self._calls: List[List[str]] = []
        self._patches: list = []

    def add_result(
        self,
        command: Sequence[str],
        stdout: str = "",
        *,
        stderr: str = "",
        returncode: int = 0,
        times: Optional[int] = None,
    ) -> "MockCLI":
        self._results.append(_Entry(
            list(command),
            {"stdout": stdout, "stderr": stderr, "returncode": returncode},
            times,
        ))
        return self

    def add_json(self, command: Sequence[str], payload: Any, *, stderr: bool = False, times: Optional[int] = None) -> "MockCLI":
        text = json.dumps(payload)
        if stderr:
            return self.add_result(command, "", stderr=text, times=times)
        return self.add_result(command, text, times=times)

    def add_key(self, address: str, *, name: Optional[str] = None, times: Optional[int] = None) -> "MockCLI":
        """``keys add`` output. Real secretcli prints it on stderr."""
        payload = {
            "name": name or "it-key",
            "type": "local",
            "address": address,
            "pubkey": "{}",
            "mnemonic": "abandon " * 23 + "art",
        }
        command = ["keys", "add"] + ([name] if name else [])
        return self.add_json(command, payload, stderr=True, times=times)

    def add_broadcast(
        self,
        command: Sequence[str],
        txhash: str,
        *,
        code: int = 0,
        raw_log: str = "",
        times: Optional[int] = None,
    ) -> "MockCLI":
        """Sync-mode broadcast output for a ``tx ...`` command."""
        return self.add_json(
            command,
            {"height": "0", "txhash": txhash, "code": code, "raw_log": raw_log},
            times=times,
        )

    def add_query(self, payload: Any, *, address: Optional[str] = None, times: Optional[int] = None) -> "MockCLI":
        command = ["query", "compute", "query"] + ([address] if address else [])
        return self.add_json(command, payload, times=times)

    def run(self, cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
        """Drop-in replacement for ``subprocess.run``."""
        args = list(cmd[1:])
        self._calls.append(args)

        for entry in self._results:
            if entry.exhausted or args[:len(entry.key)] != entry.key:
                continue
            payload = entry.take()
            return subprocess.CompletedProcess(
                list(cmd), payload["returncode"], payload["stdout"], payload["stderr"],
            )

        return subprocess.CompletedProcess(list(cmd), 1, "", f"Error: unknown command {' '.join(args[:3])}")

    @property
    def calls(self) -> List[List[str]]:
        return list(self._calls)

    def calls_to(self, command: Sequence[str]) -> List[List[str]]:
        command = list(command)
        return [c for c in self._calls if c[:len(command)] == command]

    def patch_subprocess(self) -> None:
        """Route ``subprocess.run`` through this mock until the context exits."""
        p = patch("subprocess.run", side_effect=self.run)
        self._patches.append(p)
        p.start()

    def __enter__(self) -> "MockCLI":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for p in self._patches:
            p.stop()
        self._patches.clear()


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------

def _make_response(url: str, status: int, body: Any) -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.url = url
    resp.text = body if isinstance(body, str) else json.dumps(body)
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error for url: {url}", response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


def _is_subset(subset: Dict[str, Any], superset: Dict[str, Any]) -> bool:
    """Return True if every key in *subset* exists in *superset* with the same value."""
    for key, value in subset.items():
        if key not in superset or superset[key] != value:
            return False
    return True
