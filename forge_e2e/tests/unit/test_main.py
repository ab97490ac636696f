"""
Unit tests for the command-line entry point
"""

import json
import signal
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from forge_e2e.core.forge_runner import ForgeRunner
from forge_e2e.core.orchestrator import DeploymentOrchestrator, DeploymentResult
from forge_e2e.main import EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_OK, _raise_on_sigterm, main
from forge_e2e.utils.anvil_manager import AnvilManager
from forge_e2e.utils.exceptions import CommandError, DependencyError

RESULT = DeploymentResult(
    chain_id=31337,
    token_address="0x5FbDB2315678afecb367f032d93F642f64180aa3",
    counter_address="0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
    block_number=2,
    artifact_path=Path("broadcast/DeployCounter.s.sol/31337/run-latest.json"),
    mode="local",
)


@pytest.fixture(autouse=True)
def isolated_process_state():
    # Keep pytest's own log capture handlers and SIGTERM handler in place
    with patch("forge_e2e.main.signal.signal"), patch("forge_e2e.main.setup_logging"):
        yield


@pytest.fixture
def orchestrator_cls():
    with patch("forge_e2e.main.DeploymentOrchestrator") as cls:
        yield cls


class TestMain:

    def test_env_output(self, orchestrator_cls, capsys):
        orchestrator_cls.return_value.run.return_value = RESULT

        assert main([]) == EXIT_OK

        out = capsys.readouterr().out.splitlines()
        assert out == [
            "CHAIN_ID=31337",
            "TOKEN_ADDRESS=0x5FbDB2315678afecb367f032d93F642f64180aa3",
            "COUNTER_ADDRESS=0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
            "BLOCK_NUMBER=2",
        ]

    def test_json_output_and_file(self, orchestrator_cls, capsys, tmp_path):
        orchestrator_cls.return_value.run.return_value = RESULT
        output_file = tmp_path / "out" / "deployment.json"

        assert main(["--format", "json", "--output", str(output_file)]) == EXIT_OK

        printed = json.loads(capsys.readouterr().out)
        saved = json.loads(output_file.read_text())
        assert printed == saved
        assert saved["block_number"] == 2
        assert saved["mode"] == "local"

    def test_cli_overrides_config(self, orchestrator_cls, tmp_path):
        orchestrator_cls.return_value.run.return_value = RESULT

        main(["--project-dir", str(tmp_path), "--script", "DeployToken", "--port", "9545", "--build"])

        config = orchestrator_cls.call_args[0][0]
        assert config.project_dir == tmp_path
        assert config.script == "DeployToken"
        assert config.anvil.port == 9545
        assert config.build is True

    def test_config_file(self, orchestrator_cls, tmp_path):
        orchestrator_cls.return_value.run.return_value = RESULT
        config_file = tmp_path / "deploy.json"
        config_file.write_text(json.dumps({"project_dir": "contracts", "counter_contract": "MyCounter"}))

        main(["--config", str(config_file)])

        config = orchestrator_cls.call_args[0][0]
        assert config.project_dir == tmp_path / "contracts"
        assert config.counter_contract == "MyCounter"

    def test_failure_exit_code(self, orchestrator_cls, capsys):
        orchestrator_cls.return_value.run.side_effect = CommandError("forge script exited with status 1")

        assert main([]) == EXIT_FAILURE
        assert capsys.readouterr().out == ""

    def test_dependency_hint_logged(self, orchestrator_cls, caplog):
        orchestrator_cls.return_value.run.side_effect = DependencyError(
            "forge not found", tool="forge", hint="install via foundryup"
        )

        assert main([]) == EXIT_FAILURE
        assert "install via foundryup" in caplog.text

    def test_interrupted(self, orchestrator_cls):
        orchestrator_cls.return_value.run.side_effect = KeyboardInterrupt

        assert main([]) == EXIT_INTERRUPTED

    def test_missing_config_file(self, orchestrator_cls, tmp_path):
        assert main(["--config", str(tmp_path / "missing.json")]) == EXIT_FAILURE
        orchestrator_cls.assert_not_called()

    def test_sigterm_handler_installed(self, orchestrator_cls):
        orchestrator_cls.return_value.run.return_value = RESULT

        with patch("forge_e2e.main.signal.signal") as install:
            main([])

        install.assert_called_once_with(signal.SIGTERM, _raise_on_sigterm)

    def test_sigterm_during_deploy_stops_local_node(self, orchestrator_cls):
        manager = Mock(spec=AnvilManager)
        runner = Mock(spec=ForgeRunner)
        runner.run_script.side_effect = lambda *args, **kwargs: _raise_on_sigterm(signal.SIGTERM, None)
        orchestrator_cls.side_effect = lambda config: DeploymentOrchestrator(
            config,
            environ={},
            runner=runner,
            anvil_manager=manager,
            chain_id_getter=Mock(return_value=31337),
            dependency_checker=Mock(),
        )

        with patch("forge_e2e.utils.anvil_manager.is_port_in_use", return_value=False):
            with pytest.raises(SystemExit) as exc_info:
                main([])

        assert exc_info.value.code == 128 + signal.SIGTERM == 143
        manager.start.assert_called_once()
        manager.stop.assert_called_once()
        runner.artifact_path.assert_not_called()
