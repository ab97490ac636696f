"""
Anvil Manager for Forge E2E deployments

Manages the lifecycle of a local Anvil node started with a deterministic
mnemonic, so the deployer account and its key are always the same.
"""

import logging
import signal
import socket
import subprocess
import tempfile
import time
from typing import Optional

import requests

from .config_manager import AnvilConfiguration, DEFAULT_MNEMONIC
from .exceptions import ErrorCodes, NodeError

LOG = logging.getLogger(__name__)


class AnvilManager:
    """
    Manages Anvil process lifecycle.

    Usage:
        mgr = AnvilManager()
        mgr.start(port=8545)
        # ... deploy ...
        mgr.stop()
    """

    def __init__(self, anvil_bin: str = "anvil"):
        self._anvil_bin = anvil_bin
        self._process: Optional[subprocess.Popen] = None
        self._stderr = None
        self._port: int = 8545
        self._rpc_url: str = ""

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(
        self,
        port: int = 8545,
        mnemonic: str = DEFAULT_MNEMONIC,
        silent: bool = True,
        timeout: float = 10,
    ) -> None:
        """
        Start Anvil local testnet.

        Args:
            port: Port to run Anvil on.
            mnemonic: Seed phrase for the pre-funded dev accounts.
            silent: Suppress Anvil's own startup banner and logs.
            timeout: Seconds to wait for the JSON-RPC endpoint.

        Raises:
            NodeError: If the process cannot be spawned or never answers.
        """
        if self.is_running:
            raise NodeError(f"Anvil already running (PID: {self._process.pid})", rpc_url=self._rpc_url)

        self._port = port
        self._rpc_url = f"http://localhost:{port}"

        cmd = [self._anvil_bin, "--port", str(port), "--mnemonic", mnemonic]
        if silent:
            cmd.append("--silent")

        LOG.info(f"Local mode: starting Anvil on port {port}...")
        # A file instead of a pipe so a chatty node never blocks on a full buffer
        self._stderr = tempfile.TemporaryFile()
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=self._stderr,
            )
        except OSError as e:
            self._close_stderr()
            raise NodeError(f"Failed to launch anvil: {e}", rpc_url=self._rpc_url)

        try:
            ready = self._wait_for_ready(timeout=timeout)
        except BaseException:
            self.stop()
            raise

        if not ready:
            stderr = self._drain_stderr()
            self.stop()
            raise NodeError(
                f"Anvil failed to start within {timeout}s" + (f": {stderr}" if stderr else ""),
                rpc_url=self._rpc_url,
                code=ErrorCodes.NODE_START_FAILED,
            )

        LOG.info(f"Anvil running at {self._rpc_url} (PID: {self._process.pid})")

    def stop(self) -> None:
        """Stop Anvil process."""
        if self._process is not None:
            LOG.info("Stopping Anvil...")
            try:
                if self._process.poll() is None:
                    self._process.send_signal(signal.SIGTERM)
                    self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
            finally:
                self._process = None
                self._close_stderr()
            LOG.info("Anvil stopped")

    def _drain_stderr(self) -> str:
        """Collect whatever Anvil wrote to stderr so far"""
        if self._stderr is None:
            return ""
        self._stderr.seek(0)
        return self._stderr.read().decode(errors="replace").strip()

    def _close_stderr(self) -> None:
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None

    def _wait_for_ready(self, timeout: float = 10) -> bool:
        """Wait for Anvil to answer eth_blockNumber."""
        deadline = time.time() + timeout
        while time.time() < deadline:
            if self._process is not None and self._process.poll() is not None:
                return False
            if is_rpc_ready(self._rpc_url):
                return True
            time.sleep(0.5)
        return False


def is_rpc_ready(rpc_url: str) -> bool:
    """Check whether a JSON-RPC endpoint answers eth_blockNumber"""
    try:
        resp = requests.post(
            rpc_url,
            json={"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1},
            timeout=1,
        )
        return resp.ok and "result" in resp.json()
    except (requests.RequestException, ValueError):
        return False


def is_port_in_use(port: int) -> bool:
    """Check if a port is in use."""
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=1):
            return True
    except OSError:
        return False


class LocalNode:
    """
    Scoped local node: started on entry if nothing is serving on the port,
    stopped on exit only if this scope started it.

    Usage:
        with LocalNode(config.anvil) as node:
            deploy(node.rpc_url)
    """

    def __init__(self, config: AnvilConfiguration, manager: Optional[AnvilManager] = None):
        self.config = config
        self.manager = manager or AnvilManager()
        self.started = False

    @property
    def rpc_url(self) -> str:
        return self.config.rpc_url

    def __enter__(self) -> "LocalNode":
        if is_port_in_use(self.config.port):
            LOG.info(f"A node is already serving on port {self.config.port}, reusing it")
            return self

        try:
            self.manager.start(
                port=self.config.port,
                mnemonic=self.config.mnemonic,
                timeout=self.config.startup_timeout,
            )
        except BaseException:
            self.manager.stop()
            raise
        self.started = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.started:
            self.manager.stop()
            self.started = False
