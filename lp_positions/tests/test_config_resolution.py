from __future__ import annotations

import copy
import json
from pathlib import Path

import pytest

import lp_positions.core.config as config

EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config.example.json"


@pytest.fixture
def restore_global_config() -> None:
    original = copy.deepcopy(config.CONFIG)
    yield
    config.set_config(original)


@pytest.fixture
def no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("LP_POSITIONS_CONFIG_PATH", "LP_POSITIONS_CONFIG", "LP_POSITIONS_API_KEY"):
        monkeypatch.delenv(key, raising=False)


class TestLiquidityAndPermitSettings:
    def test_defaults_without_sections(
        self, restore_global_config: None, no_config_env: None
    ) -> None:
        config.set_config({})

        assert config.get_debounce_ms() == config.DEFAULT_DEBOUNCE_MS == 700
        assert config.get_permit_expiration_s() == 2_592_000
        assert config.get_permit_sig_deadline_s() == 1_800
        assert config.get_http_timeout_s() == 30.0
        assert config.get_api_key() is None

    def test_overrides_are_coerced(self, restore_global_config: None) -> None:
        config.set_config(
            {
                "system": {"http_timeout_s": "12.5"},
                "liquidity": {"debounce_ms": "250"},
                "permit2": {"expiration_s": 3600, "sig_deadline_s": "90"},
            }
        )

        assert config.get_debounce_ms() == 250
        assert config.get_http_timeout_s() == 12.5
        assert config.get_permit_expiration_s() == 3600
        assert config.get_permit_sig_deadline_s() == 90

    def test_non_mapping_sections_fall_back(self, restore_global_config: None) -> None:
        config.set_config({"liquidity": 5, "permit2": ["sig_deadline_s"]})

        assert config.get_debounce_ms() == 700
        assert config.get_permit_sig_deadline_s() == 1_800


class TestPositionManagerAddress:
    def test_string_and_int_chain_keys(self, restore_global_config: None) -> None:
        config.set_config(
            {"chain": {"position_managers": {"8453": "0xabc", 1: "0xdef"}}}
        )

        assert config.get_position_manager_address(8453) == "0xabc"
        assert config.get_position_manager_address(1) == "0xdef"

    def test_unknown_chain_raises(self, restore_global_config: None) -> None:
        config.set_config({"chain": {"position_managers": {"8453": "0xabc"}}})

        with pytest.raises(ValueError, match="42161"):
            config.get_position_manager_address(42161)


class TestConfigFile:
    def test_env_alias_loads_example_settings(
        self,
        restore_global_config: None,
        no_config_env: None,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        monkeypatch.setenv("LP_POSITIONS_CONFIG", "config.example.json")
        monkeypatch.chdir(tmp_path)

        assert config.resolve_config_path() == EXAMPLE_CONFIG

        config.load_config()
        assert config.get_debounce_ms() == 700
        assert config.get_position_manager_address(8453).startswith("0x")
        assert config.get_rpc_urls()["8453"] == ["https://mainnet.base.org"]

    def test_absolute_env_path_wins(
        self,
        restore_global_config: None,
        no_config_env: None,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
    ) -> None:
        path = tmp_path / "deposit.json"
        path.write_text(json.dumps({"permit2": {"sig_deadline_s": 600}}))
        monkeypatch.setenv("LP_POSITIONS_CONFIG_PATH", str(path))

        config.load_config()

        assert config.get_permit_sig_deadline_s() == 600
        assert config.get_permit_expiration_s() == config.DEFAULT_PERMIT_EXPIRATION_S

    def test_unreadable_file_leaves_defaults(
        self, restore_global_config: None, tmp_path: Path
    ) -> None:
        broken = tmp_path / "config.json"
        broken.write_text("{not json")

        config.load_config(broken)

        assert config.CONFIG == {}
        assert config.get_debounce_ms() == 700
        with pytest.raises(FileNotFoundError):
            config.load_config(tmp_path / "missing.json", require_exists=True)


def test_api_key_env_fallback(
    restore_global_config: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    config.set_config({"system": {"api_key": ""}})
    monkeypatch.setenv("LP_POSITIONS_API_KEY", "lp_env")
    assert config.get_api_key() == "lp_env"


def test_web3_accepts_int_rpc_url_keys(restore_global_config: None) -> None:
    config.set_config({"chain": {"rpc_urls": {8453: "https://example.invalid"}}})

    from lp_positions.core.utils.web3 import get_web3_from_chain_id

    w3 = get_web3_from_chain_id(8453)
    assert w3.provider.endpoint_uri == "https://example.invalid"


def test_web3_missing_rpc_raises(restore_global_config: None) -> None:
    config.set_config({"chain": {"rpc_urls": {}}})

    from lp_positions.core.utils.web3 import get_web3_from_chain_id

    with pytest.raises(ValueError):
        get_web3_from_chain_id(8453)
