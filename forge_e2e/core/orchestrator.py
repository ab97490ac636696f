"""
Deployment orchestrator

Runs the deploy-and-extract workflow end to end:

1. check tool dependencies
2. resolve local/remote environment
3. start a local Anvil node if needed (stopped again on every exit path)
4. optionally build the project
5. query the chain ID
6. run the forge deployment script
7. extract the token address, counter address and token block number
   from the broadcast artifact

Steps run strictly in order and any failure aborts the run.
"""

import logging
import os
from contextlib import ExitStack
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from .artifact import BroadcastArtifact
from .chain import get_chain_id
from .environment import BONSAI_API_KEY, DeploymentEnvironment, resolve_environment
from .forge_runner import ForgeRunner
from ..utils.anvil_manager import AnvilManager, LocalNode
from ..utils.config_manager import DeployConfig
from ..utils.dependencies import check_dependencies, required_tools

LOG = logging.getLogger(__name__)


@dataclass
class DeploymentResult:
    """Addresses and block extracted from one deployment run"""
    chain_id: int
    token_address: str
    counter_address: str
    block_number: int
    artifact_path: Path
    mode: str

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["artifact_path"] = str(self.artifact_path)
        return result

    def to_env(self) -> Dict[str, str]:
        """Values in the KEY=value form downstream shell steps read"""
        return {
            "CHAIN_ID": str(self.chain_id),
            "TOKEN_ADDRESS": self.token_address,
            "COUNTER_ADDRESS": self.counter_address,
            "BLOCK_NUMBER": str(self.block_number),
        }


class DeploymentOrchestrator:
    """
    Sequences environment setup, the forge deployment and artifact extraction.

    Collaborators are injectable so each step can be replaced in tests.
    """

    def __init__(
        self,
        config: DeployConfig,
        environ: Optional[Mapping[str, str]] = None,
        runner: Optional[ForgeRunner] = None,
        anvil_manager: Optional[AnvilManager] = None,
        chain_id_getter: Callable[..., int] = get_chain_id,
        dependency_checker: Callable[[Iterable[str]], Any] = check_dependencies,
    ):
        self.config = config
        self.environ = dict(os.environ if environ is None else environ)
        self.runner = runner or ForgeRunner(config.project_dir)
        self.anvil_manager = anvil_manager or AnvilManager()
        self.chain_id_getter = chain_id_getter
        self.dependency_checker = dependency_checker

    def run(self) -> DeploymentResult:
        """
        Execute the workflow once.

        Returns:
            DeploymentResult with the extracted addresses and block number

        Raises:
            ForgeE2EError: Any dependency, configuration, command or
                artifact failure; the local node is stopped first if this
                run started it
        """
        self.dependency_checker(required_tools(local_mode=not self.environ.get(BONSAI_API_KEY)))
        env = resolve_environment(self.environ, self.config.anvil)

        with ExitStack() as stack:
            if env.is_local:
                stack.enter_context(LocalNode(self.config.anvil, self.anvil_manager))
            return self._deploy(env)

    def _deploy(self, env: DeploymentEnvironment) -> DeploymentResult:
        child_env = env.apply(dict(self.environ))

        if self.config.build:
            self.runner.build(child_env)

        chain_id = self.chain_id_getter(env.rpc_url, timeout=self.config.rpc_timeout)

        self.runner.run_script(
            self.config.script,
            rpc_url=env.rpc_url,
            private_key=env.private_key,
            env=child_env,
        )

        path = self.runner.artifact_path(self.config.script, chain_id)
        artifact = BroadcastArtifact.load(path)

        token_address = artifact.contract_address(self.config.token_contract)
        counter_address = artifact.contract_address(self.config.counter_contract)
        block_number = artifact.block_number(token_address)

        LOG.info(f"{self.config.token_contract} deployed at {token_address} (block {block_number})")
        LOG.info(f"{self.config.counter_contract} deployed at {counter_address}")

        return DeploymentResult(
            chain_id=chain_id,
            token_address=token_address,
            counter_address=counter_address,
            block_number=block_number,
            artifact_path=path,
            mode=env.mode,
        )
