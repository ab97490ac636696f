"""
Chain queries against the configured JSON-RPC endpoint
"""

import logging

import requests
from web3 import Web3
from web3.exceptions import Web3Exception

from ..utils.exceptions import ErrorCodes, NodeError

LOG = logging.getLogger(__name__)


def get_chain_id(rpc_url: str, timeout: float = 10) -> int:
    """
    Query the numeric chain identifier (eth_chainId) of an endpoint.

    Raises:
        NodeError: If the endpoint cannot be reached or returns an error
    """
    web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    try:
        chain_id = int(web3.eth.chain_id)
    except (requests.RequestException, Web3Exception, ValueError) as e:
        raise NodeError(
            f"eth_chainId failed for {rpc_url}: {e}",
            rpc_url=rpc_url,
            code=ErrorCodes.NODE_QUERY_FAILED
        )
    LOG.info(f"Chain ID: {chain_id}")
    return chain_id
