import pytest

from secret_testing import integration
from secret_testing.config import Settings
from secret_testing.counter import query_count
from secret_testing.deployer import initialize_contract
from secret_testing.exceptions import ContractDeployError, IntegrationAssertionError


@pytest.fixture
def settings(wasm_file):
    return Settings(contract_path=str(wasm_file), faucet_url="http://localhost:5000")


def test_scenario_init_then_stress(fake_client, wasm_file):
    code_hash, address = initialize_contract(fake_client, wasm_file, {"count": integration.INIT_COUNT})

    integration.test_count_on_initialization(fake_client, code_hash, address)
    integration.test_increment_stress(fake_client, code_hash, address)

    assert query_count(fake_client, code_hash, address) == 14


def test_default_suite_passes_on_counter_chain(fake_client, wasm_file):
    code_hash, address = initialize_contract(fake_client, wasm_file, {"count": 4})

    passed = integration.run_tests(integration.DEFAULT_TESTS, fake_client, code_hash, address)

    assert passed == [t.__name__ for t in integration.DEFAULT_TESTS]
    assert query_count(fake_client, code_hash, address) == 0
    assert len(fake_client.chain["transfers"]) == 1


def test_stress_detects_lost_increments(fake_client_factory, wasm_file):
    client = fake_client_factory(increment_step=0)
    code_hash, address = initialize_contract(client, wasm_file, {"count": 4})

    with pytest.raises(IntegrationAssertionError, match="expected to be 14 instead of 4"):
        integration.test_increment_stress(client, code_hash, address)


def test_initial_count_mismatch_fails(fake_client, wasm_file):
    code_hash, address = initialize_contract(fake_client, wasm_file, {"count": 7})

    with pytest.raises(IntegrationAssertionError, match="expected to be 4 instead of 7"):
        integration.test_count_on_initialization(fake_client, code_hash, address)


def test_unauthorized_reset_that_succeeds_is_caught(fake_client, wasm_file):
    code_hash, address = initialize_contract(fake_client, wasm_file, {"count": 4})
    # Whoever asks first becomes the stranger; make the contract trust them
    fake_client.chain["contracts"][address]["owner"] = "secret1stranger" + "0" * 28

    with pytest.raises(IntegrationAssertionError, match="to fail"):
        integration.test_reset_unauthorized(fake_client, code_hash, address)


def test_run_funds_deploys_and_tests(lcd, fake_client_factory, settings):
    lcd.add_faucet()
    client = fake_client_factory(balances=[0, 0, settings.target_balance])

    passed = integration.run(settings, client=client)

    assert passed == [t.__name__ for t in integration.DEFAULT_TESTS]
    assert len(lcd.calls_to("/faucet")) == 2
    assert client.closed


def test_run_closes_client_when_a_test_fails(lcd, fake_client_factory, settings):
    client = fake_client_factory(increment_step=2)

    with pytest.raises(IntegrationAssertionError):
        integration.run(settings, client=client)
    assert client.closed


def test_run_closes_client_when_deploy_fails(fake_client, settings, tmp_path):
    settings.contract_path = str(tmp_path / "missing.wasm")

    with pytest.raises(ContractDeployError):
        integration.run(settings, client=fake_client)
    assert fake_client.closed


def test_main_applies_cli_overrides(monkeypatch):
    captured = {}
    monkeypatch.setattr(integration, "run", lambda settings: captured.setdefault("settings", settings))
    monkeypatch.setenv("SECRET_CHAIN_ID", "pulsar-3")
    monkeypatch.setenv("TARGET_BALANCE", "42")

    integration.main([
        "--lcd-url", "http://node:1317",
        "--contract", "build/counter.wasm",
        "--faucet-max-attempts", "5",
        "--log-level", "debug",
    ])

    settings = captured["settings"]
    assert settings.lcd_url == "http://node:1317"
    assert settings.contract_path == "build/counter.wasm"
    assert settings.faucet_max_attempts == 5
    assert settings.chain_id == "pulsar-3"
    assert settings.target_balance == 42
    assert settings.log_level == "debug"
