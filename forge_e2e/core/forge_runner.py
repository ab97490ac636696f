"""
Foundry command runner

Runs `forge script` (and optionally the project build) inside a contract
project and locates the broadcast artifact it writes.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Mapping, Optional

from ..utils.exceptions import CommandError, ErrorCodes

LOG = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".s.sol"
ARTIFACT_NAME = "run-latest.json"
BUILD_RUST_LOG = "info,risc0_steel=debug"


def script_file_name(script: str) -> str:
    """DeployCounter -> DeployCounter.s.sol"""
    return script if script.endswith(SCRIPT_SUFFIX) else script + SCRIPT_SUFFIX


def artifact_path(project_dir: Path, script: str, chain_id: int) -> Path:
    """Path of the broadcast artifact forge writes for script on chain_id"""
    return Path(project_dir) / "broadcast" / script_file_name(script) / str(chain_id) / ARTIFACT_NAME


class ForgeRunner:
    """Invokes forge (and cargo for builds) in a contract project directory"""

    def __init__(self, project_dir: Path, forge_bin: str = "forge", cargo_bin: str = "cargo"):
        self.project_dir = Path(project_dir)
        self.forge_bin = forge_bin
        self.cargo_bin = cargo_bin

    def _run(self, cmd: List[str], env: Mapping[str, str], description: str) -> subprocess.CompletedProcess:
        LOG.info(description)
        shown = list(cmd)
        if "--private-key" in shown:
            shown[shown.index("--private-key") + 1] = "***"
        LOG.debug(f"$ {' '.join(shown)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.project_dir),
                env=dict(env),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise CommandError(
                f"Failed to execute {cmd[0]}: {e}",
                command=cmd[0],
                code=ErrorCodes.COMMAND_NOT_FOUND
            )

        for line in result.stdout.splitlines():
            LOG.debug(f"[{cmd[0]}] {line}")

        if result.returncode != 0:
            LOG.error(f"{cmd[0]} failed (exit {result.returncode}):\n{result.stderr}")
            raise CommandError(
                f"{' '.join(cmd[:2])} exited with status {result.returncode}: {result.stderr.strip()}",
                command=" ".join(cmd[:2]),
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def build(self, env: Mapping[str, str]) -> None:
        """Build the Rust workspace (generates Solidity sources) then compile contracts"""
        cargo_env = dict(env)
        cargo_env["RUST_LOG"] = BUILD_RUST_LOG
        self._run([self.cargo_bin, "build"], cargo_env, "Building project to generate contracts...")
        self._run([self.forge_bin, "build"], env, "Compiling Solidity contracts...")

    def run_script(
        self,
        script: str,
        rpc_url: str,
        private_key: str,
        env: Mapping[str, str],
        broadcast: bool = True,
        extra_args: Optional[List[str]] = None
    ) -> subprocess.CompletedProcess:
        """
        Run a deployment script with forge.

        Raises:
            CommandError: If forge exits with a non-zero status
        """
        cmd = [self.forge_bin, "script", "--rpc-url", rpc_url, "--private-key", private_key]
        if broadcast:
            cmd.append("--broadcast")
        cmd.extend(extra_args or [])
        cmd.append(script)
        return self._run(cmd, env, f"Running deployment script {script}...")

    def artifact_path(self, script: str, chain_id: int) -> Path:
        return artifact_path(self.project_dir, script, chain_id)
