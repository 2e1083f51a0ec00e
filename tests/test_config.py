from secret_testing.config import Settings


def test_defaults_target_local_dev_chain():
    settings = Settings.from_env({}, dotenv=False)

    assert settings.lcd_url == "http://localhost:1317"
    assert settings.node_url == "tcp://localhost:26657"
    assert settings.chain_id == "secretdev-1"
    assert settings.faucet_url == "http://localhost:5000"
    assert settings.contract_path == "contract.wasm"
    assert settings.target_balance == 100_000_000
    assert settings.faucet_max_attempts is None
    assert settings.faucet_retry_delay == 0.0
    assert settings.log_level == "INFO"


def test_environment_overrides():
    settings = Settings.from_env({
        "SECRET_LCD_URL": "http://lcd:1317",
        "SECRET_NODE_URL": "tcp://rpc:26657",
        "SECRET_CHAIN_ID": "pulsar-3",
        "FAUCET_URL": "http://faucet:5000",
        "CONTRACT_PATH": "artifacts/counter.wasm",
        "TARGET_BALANCE": "5000",
        "SECRETCLI": "/opt/bin/secretcli",
        "SECRET_GAS_PRICES": "0.25uscrt",
        "FAUCET_RETRY_DELAY": "1.5",
        "FAUCET_MAX_ATTEMPTS": "10",
        "TX_TIMEOUT": "90",
        "SECRET_LOG_LEVEL": "debug",
    }, dotenv=False)

    assert settings.lcd_url == "http://lcd:1317"
    assert settings.node_url == "tcp://rpc:26657"
    assert settings.chain_id == "pulsar-3"
    assert settings.faucet_url == "http://faucet:5000"
    assert settings.contract_path == "artifacts/counter.wasm"
    assert settings.target_balance == 5000
    assert settings.secretcli == "/opt/bin/secretcli"
    assert settings.gas_prices == "0.25uscrt"
    assert settings.faucet_retry_delay == 1.5
    assert settings.faucet_max_attempts == 10
    assert settings.tx_timeout == 90.0
    assert settings.log_level == "DEBUG"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("SECRET_CHAIN_ID=from-dotenv\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_CHAIN_ID", "placeholder")
    monkeypatch.delenv("SECRET_CHAIN_ID")

    assert Settings.from_env().chain_id == "from-dotenv"
