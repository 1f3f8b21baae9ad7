import aiohttp
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3

from ivm_deployer.core.config import NetworkConfig
from ivm_deployer.core.constants.base import DEFAULT_HTTP_TIMEOUT


def _default_rpc_headers() -> dict[str, str]:
    return AsyncHTTPProvider.get_request_headers()


def get_web3(network: NetworkConfig) -> AsyncWeb3:
    provider = AsyncHTTPProvider(
        network.rpc_url,
        request_kwargs={
            "headers": _default_rpc_headers(),
            "timeout": aiohttp.ClientTimeout(total=DEFAULT_HTTP_TIMEOUT),
        },
    )
    logger.debug(f"Connecting to {network.name} (chain {network.chain_id})")
    return AsyncWeb3(provider)
