"""
Tests for workflow configuration loading.
"""
import json

import pytest

from conftest import CONSUMER_ADDRESS, WATCH_TOKEN_ADDRESS
from sardis_rwa.config import EVMConfig, WorkflowSettings, load_settings
from sardis_rwa.exceptions import ConfigurationError


def _write(tmp_path, data) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestLoadSettings:

    def test_loads_evm_entry(self, config_file):
        settings = load_settings(config_file)

        evm = settings.primary_evm
        assert evm.luxury_watch_address == WATCH_TOKEN_ADDRESS
        assert evm.consumer_address == CONSUMER_ADDRESS
        assert evm.chain_selector_name == "ethereum-testnet-sepolia"
        assert evm.gas_limit == 500_000

    def test_defaults(self, config_file):
        settings = load_settings(config_file)

        assert settings.chain_mode == "simulated"
        assert settings.is_testnet is True
        assert settings.oracle_url == ""
        assert settings.attestor_private_keys == []
        assert settings.attestation_quorum is None

    def test_first_evm_entry_is_primary(self, tmp_path, workflow_config):
        second = {**workflow_config["evms"][0], "chainSelectorName": "polygon-testnet-amoy"}
        path = _write(tmp_path, {"evms": [*workflow_config["evms"], second]})

        assert load_settings(path).primary_evm.chain_selector_name == "ethereum-testnet-sepolia"

    def test_overrides(self, config_file):
        settings = load_settings(config_file, is_testnet=False)

        assert settings.is_testnet is False

    def test_env_vars(self, config_file, monkeypatch):
        monkeypatch.setenv("SARDIS_RWA_ORACLE_URL", "https://oracle.example")
        monkeypatch.setenv("SARDIS_RWA_RECEIPT_TIMEOUT_SECONDS", "30")

        settings = load_settings(config_file)

        assert settings.oracle_url == "https://oracle.example"
        assert settings.receipt_timeout_seconds == 30.0


class TestInvalidConfig:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.json")

    def test_not_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{evms: ")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_settings(path)

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(_write(tmp_path, [1, 2]))

    def test_empty_evms(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_write(tmp_path, {"evms": []}))

        assert exc_info.value.details["errors"]

    @pytest.mark.parametrize("gas_limit", ["abc", "0", "-5", "1e6", ""])
    def test_bad_gas_limit(self, tmp_path, workflow_config, gas_limit):
        evm = {**workflow_config["evms"][0], "gasLimit": gas_limit}

        with pytest.raises(ConfigurationError):
            load_settings(_write(tmp_path, {"evms": [evm]}))

    def test_live_mode_requires_forwarder_settings(self, tmp_path, workflow_config):
        path = _write(tmp_path, {**workflow_config, "chain_mode": "live", "rpc_url": "http://rpc.test"})

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(path)

        assert "forwarder_address" in exc_info.value.message
        assert "transmitter_private_key" in exc_info.value.message


class TestEVMConfig:

    def test_accepts_field_names(self):
        evm = EVMConfig(
            luxury_watch_address=WATCH_TOKEN_ADDRESS,
            consumer_address=CONSUMER_ADDRESS,
            chain_selector_name="ethereum-testnet-sepolia",
            gas_limit=21000,
        )

        assert evm.gas_limit == 21000

    def test_settings_construct_directly(self, workflow_config):
        settings = WorkflowSettings(**workflow_config)

        assert settings.primary_evm.gas_limit == 500_000
