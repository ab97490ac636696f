"""
Deployment environment resolution

Decides between remote mode (a Bonsai API key is configured) and local
mode (an ephemeral Anvil node), and produces the variables the deployment
script expects: ETH_RPC_URL, ETH_WALLET_ADDRESS, ETH_WALLET_PRIVATE_KEY and
TOKEN_OWNER.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, MutableMapping, Optional, Tuple

from eth_account import Account
from eth_utils import encode_hex

from ..utils.config_manager import AnvilConfiguration, DEFAULT_MNEMONIC
from ..utils.exceptions import ConfigurationError, ErrorCodes

LOG = logging.getLogger(__name__)

BONSAI_API_KEY = "BONSAI_API_KEY"
BONSAI_API_URL = "BONSAI_API_URL"
DEFAULT_BONSAI_API_URL = "https://api.bonsai.xyz"

ETH_RPC_URL = "ETH_RPC_URL"
ETH_WALLET_ADDRESS = "ETH_WALLET_ADDRESS"
ETH_WALLET_PRIVATE_KEY = "ETH_WALLET_PRIVATE_KEY"
TOKEN_OWNER = "TOKEN_OWNER"

# First account of the default Anvil mnemonic
DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0/0"

MODE_LOCAL = "local"
MODE_REMOTE = "remote"


@dataclass(frozen=True)
class DeploymentEnvironment:
    """Resolved connection and signing settings for one run"""
    mode: str
    rpc_url: str
    wallet_address: str
    private_key: str
    bonsai_api_key: Optional[str] = None
    bonsai_api_url: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.mode == MODE_LOCAL

    @property
    def token_owner(self) -> str:
        return self.wallet_address

    def to_env(self) -> Dict[str, str]:
        """Variables exported to the deployment tooling"""
        env = {
            ETH_RPC_URL: self.rpc_url,
            ETH_WALLET_ADDRESS: self.wallet_address,
            ETH_WALLET_PRIVATE_KEY: self.private_key,
            TOKEN_OWNER: self.token_owner,
        }
        if self.bonsai_api_key:
            env[BONSAI_API_KEY] = self.bonsai_api_key
            env[BONSAI_API_URL] = self.bonsai_api_url or DEFAULT_BONSAI_API_URL
        return env

    def apply(self, environ: MutableMapping[str, str]) -> MutableMapping[str, str]:
        """Merge the exported variables into environ and return it"""
        environ.update(self.to_env())
        return environ


def derive_wallet(mnemonic: str = DEFAULT_MNEMONIC, path: str = DEFAULT_DERIVATION_PATH) -> Tuple[str, str]:
    """
    Derive the (address, private key) pair for a mnemonic.

    With the default Anvil mnemonic this is always
    0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266.
    """
    Account.enable_unaudited_hdwallet_features()
    account = Account.from_mnemonic(mnemonic, account_path=path)
    return account.address, encode_hex(account.key)


def require_env(environ: Mapping[str, str], name: str) -> str:
    """Return a non-empty environment value or fail naming the variable"""
    value = environ.get(name)
    if not value:
        raise ConfigurationError(
            f"{name}: parameter null or not set",
            field=name,
            code=ErrorCodes.CONFIG_VALUE_MISSING
        )
    return value


def resolve_environment(
    environ: Optional[Mapping[str, str]] = None,
    anvil: Optional[AnvilConfiguration] = None
) -> DeploymentEnvironment:
    """
    Resolve the deployment environment from process variables.

    Args:
        environ: Variables to read (default: os.environ)
        anvil: Local node settings used in local mode

    Returns:
        DeploymentEnvironment for the detected mode

    Raises:
        ConfigurationError: In remote mode, if a required variable is missing
    """
    if environ is None:
        environ = os.environ
    anvil = anvil or AnvilConfiguration()

    api_key = environ.get(BONSAI_API_KEY)
    if not api_key:
        address, private_key = derive_wallet(anvil.mnemonic)
        LOG.info(f"Local mode: no {BONSAI_API_KEY} set, using Anvil at {anvil.rpc_url}")
        return DeploymentEnvironment(
            mode=MODE_LOCAL,
            rpc_url=anvil.rpc_url,
            wallet_address=address,
            private_key=private_key,
        )

    LOG.info(f"Remote mode: {BONSAI_API_KEY} is set")
    return DeploymentEnvironment(
        mode=MODE_REMOTE,
        rpc_url=require_env(environ, ETH_RPC_URL),
        wallet_address=require_env(environ, ETH_WALLET_ADDRESS),
        private_key=require_env(environ, ETH_WALLET_PRIVATE_KEY),
        bonsai_api_key=api_key,
        bonsai_api_url=environ.get(BONSAI_API_URL) or DEFAULT_BONSAI_API_URL,
    )
