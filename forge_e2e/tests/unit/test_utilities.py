"""
Unit tests for the utility modules: exceptions, common helpers,
configuration and dependency checks.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from forge_e2e.utils.common import env_lines, hex_to_int, same_address
from forge_e2e.utils.config_manager import ConfigManager, DeployConfig, DEFAULT_MNEMONIC
from forge_e2e.utils.dependencies import check_dependencies, required_tools
from forge_e2e.utils.exceptions import (
    ConfigurationError,
    DependencyError,
    ErrorCodes,
    ForgeE2EError,
    QueryMatchError,
)


class TestExceptions:
    """Test custom exceptions"""

    def test_base_exception(self):
        error = ForgeE2EError("Test error", code=1001)

        assert error.message == "Test error"
        assert error.code == 1001
        assert str(error) == "[1001] Test error"

        error_dict = error.to_dict()
        assert error_dict["error"] == "ForgeE2EError"
        assert error_dict["message"] == "Test error"
        assert error_dict["code"] == 1001

    def test_configuration_error_details(self):
        error = ConfigurationError("missing", field="ETH_RPC_URL", code=ErrorCodes.CONFIG_VALUE_MISSING)

        assert error.details == {"field": "ETH_RPC_URL"}
        assert error.code == ErrorCodes.CONFIG_VALUE_MISSING

    def test_dependency_error_default_code(self):
        error = DependencyError("forge not found", tool="forge", hint="install foundry")

        assert error.code == ErrorCodes.DEPENDENCY_MISSING
        assert error.details["hint"] == "install foundry"

    def test_query_match_error_codes(self):
        assert QueryMatchError("none", match_count=0).code == ErrorCodes.QUERY_NO_MATCH
        assert QueryMatchError("many", match_count=2).code == ErrorCodes.QUERY_AMBIGUOUS


class TestCommon:
    """Test common helpers"""

    def test_hex_to_int(self):
        assert hex_to_int("0x2a") == 42
        assert hex_to_int("0X2A") == 42
        assert hex_to_int(42) == 42
        assert hex_to_int("42") == 42

    def test_same_address_ignores_case(self):
        checksummed = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
        assert same_address(checksummed, checksummed.lower())
        assert not same_address(checksummed, "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512")
        assert not same_address(None, checksummed)

    def test_env_lines(self):
        assert env_lines({"A": 1, "B": "x"}) == "A=1\nB=x"


class TestConfigManager:
    """Test configuration management"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for key in ("SCRIPT", "BUILD", "PROJECT_DIR", "ANVIL_PORT", "ANVIL_MNEMONIC"):
            monkeypatch.delenv(f"FORGE_E2E_{key}", raising=False)

    @pytest.fixture
    def config_manager(self, tmp_path):
        return ConfigManager(config_dir=tmp_path)

    def _write(self, path: Path, config: dict) -> None:
        with open(path, 'w') as f:
            json.dump(config, f)

    def test_defaults_without_file(self, config_manager):
        config = config_manager.load_deploy_config()

        assert config == DeployConfig()
        assert config.script == "DeployCounter"
        assert config.token_contract == "ERC20FixedSupply"
        assert config.counter_contract == "Counter"
        assert config.anvil.port == 8545
        assert config.anvil.mnemonic == DEFAULT_MNEMONIC
        assert config.anvil.rpc_url == "http://localhost:8545"

    def test_load_config_file(self, config_manager, tmp_path):
        self._write(tmp_path / "deploy.json", {
            "project_dir": "contracts",
            "script": "DeployToken",
            "build": True,
            "anvil": {"port": 9545}
        })

        config = config_manager.load_deploy_config("deploy.json")

        assert config.project_dir == tmp_path / "contracts"
        assert config.script == "DeployToken"
        assert config.build is True
        assert config.anvil.port == 9545
        assert config.anvil.mnemonic == DEFAULT_MNEMONIC

    def test_load_missing_config(self, config_manager):
        with pytest.raises(ConfigurationError) as exc_info:
            config_manager.load_deploy_config("nonexistent.json")
        assert exc_info.value.code == ErrorCodes.CONFIG_FILE_NOT_FOUND

    def test_invalid_json(self, config_manager, tmp_path):
        (tmp_path / "deploy.json").write_text("{not json")

        with pytest.raises(ConfigurationError) as exc_info:
            config_manager.load_config("deploy.json")
        assert exc_info.value.code == ErrorCodes.CONFIG_VALIDATION_FAILED

    def test_schema_violation(self, config_manager, tmp_path):
        self._write(tmp_path / "deploy.json", {"anvil": {"port": "not-a-port"}, "unknown": 1})

        with pytest.raises(ConfigurationError) as exc_info:
            config_manager.load_config("deploy.json")
        assert "anvil -> port" in exc_info.value.message
        assert "unknown" in exc_info.value.message

    def test_env_overrides(self, config_manager, monkeypatch):
        monkeypatch.setenv("FORGE_E2E_SCRIPT", "DeployOther")
        monkeypatch.setenv("FORGE_E2E_BUILD", "true")
        monkeypatch.setenv("FORGE_E2E_ANVIL_PORT", "8600")

        config = config_manager.load_deploy_config()

        assert config.script == "DeployOther"
        assert config.build is True
        assert config.anvil.port == 8600

    def test_shipped_config_is_valid(self):
        repo_configs = Path(__file__).resolve().parents[3] / "configs"
        config = ConfigManager(config_dir=repo_configs).load_deploy_config("deploy.json")

        assert config.script == "DeployCounter"
        assert config.anvil == DeployConfig().anvil

    def test_invalid_env_override_rejected(self, config_manager, monkeypatch):
        monkeypatch.setenv("FORGE_E2E_ANVIL_PORT", "seventy")

        with pytest.raises(ConfigurationError):
            config_manager.load_deploy_config()


class TestDependencies:
    """Test tool dependency checks"""

    def test_required_tools(self):
        assert required_tools(local_mode=True) == ["forge", "cargo", "anvil"]
        assert required_tools(local_mode=False) == ["forge", "cargo"]

    def test_missing_tool_reports_hint(self):
        with patch("forge_e2e.utils.dependencies.shutil.which", return_value=None):
            with pytest.raises(DependencyError) as exc_info:
                check_dependencies(["forge"])

        assert exc_info.value.details["tool"] == "forge"
        assert "foundryup" in str(exc_info.value)

    def test_versions_collected(self):
        def fake_run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 0, stdout=f"{cmd[0]} 1.2.3 (abc)\nmore\n", stderr="")

        with patch("forge_e2e.utils.dependencies.shutil.which", return_value="/usr/bin/tool"), \
                patch("forge_e2e.utils.dependencies.subprocess.run", side_effect=fake_run):
            versions = check_dependencies(["forge", "cargo"])

        assert versions == {"forge": "forge 1.2.3 (abc)", "cargo": "cargo 1.2.3 (abc)"}

    def test_broken_tool(self):
        failed = subprocess.CompletedProcess(["cargo"], 1, stdout="", stderr="error")

        with patch("forge_e2e.utils.dependencies.shutil.which", return_value="/usr/bin/cargo"), \
                patch("forge_e2e.utils.dependencies.subprocess.run", return_value=failed):
            with pytest.raises(DependencyError) as exc_info:
                check_dependencies(["cargo"])

        assert exc_info.value.code == ErrorCodes.DEPENDENCY_VERSION_FAILED
        assert "rustup" in str(exc_info.value)
