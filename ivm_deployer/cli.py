"""Command line entry point.

Usage:
  ivm-deployer deploy --network sepolia
  ivm-deployer audit --network mainnet --token 0x...
  ivm-deployer block-number --network sepolia
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable
from typing import Any

import click
from loguru import logger

from ivm_deployer.adapters.chain_adapter.adapter import IvmChainAdapter
from ivm_deployer.core.config import (
    build_audit_config,
    build_deployment_config,
    get_network_config,
    load_config,
)
from ivm_deployer.deploy.drivers import AuditDriver, DeploymentDriver

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(log_level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level).upper())


def _run(coro: Awaitable[Any], *, action: str) -> Any:
    try:
        return asyncio.run(coro)
    except Exception as exc:
        logger.opt(exception=exc).error(f"{action} failed: {exc}")
        sys.exit(1)


@click.group(help="Deploy, initialize and verify the IVM token contracts.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.json (defaults to IVM_CONFIG_PATH or the project root).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
)
def cli(config_path: str | None, log_level: str) -> None:
    _configure_logging(log_level)
    load_config(config_path, require_exists=config_path is not None)


@cli.command(name="deploy", help="Deploy IVMToken, initialize allocations and verify it.")
@click.option("--network", default=None, help="Network name (e.g. sepolia, mainnet).")
def deploy_cmd(network: str | None) -> None:
    async def _deploy() -> None:
        driver = DeploymentDriver(build_deployment_config(network))
        result = await driver.run()
        click.echo(f"token={result.token_address} verification={result.verification.status}")

    _run(_deploy(), action="Deployment")


@cli.command(name="audit", help="Resolve the vesting / vault contracts and verify them.")
@click.option("--network", default=None, help="Network name (e.g. sepolia, mainnet).")
@click.option("--token", "token_address", default=None, help="IVM token address.")
@click.option(
    "--include-token/--no-include-token",
    default=False,
    show_default=True,
    help="Also verify the token contract itself.",
)
def audit_cmd(network: str | None, token_address: str | None, include_token: bool) -> None:
    async def _audit() -> None:
        config = build_audit_config(
            network, token_address=token_address, include_token=include_token
        )
        result = await AuditDriver(config).run()
        for role, address in result.addresses.items():
            click.echo(f"{role}={address}")

    _run(_audit(), action="Audit")


@cli.command(name="block-number", help="Print the current block number.")
@click.option("--network", default=None, help="Network name (e.g. sepolia, mainnet).")
def block_number_cmd(network: str | None) -> None:
    async def _block_number() -> None:
        chain = IvmChainAdapter(get_network_config(network))
        try:
            click.echo(f"Current block number: {await chain.get_block_number()}")
        finally:
            await chain.close()

    _run(_block_number(), action="Block number lookup")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
