import asyncio
import json
import logging
from pathlib import Path
from random import Random
from typing import Any

from eth_account import Account
from web3 import AsyncWeb3

from dtf_workload.config import SimConfig
from dtf_workload.errors import SetupError
from dtf_workload.gateway import ContractGateway, GasLimits
from dtf_workload.oplog import OperationLog
from dtf_workload.operations import FundOperations, RunStats
from dtf_workload.planner import AllocationPlanner
from dtf_workload.registry import FundRegistry
from dtf_workload.scheduler import Scheduler
from dtf_workload.tokens import TokenCatalog, prepare_tokens, read_deployment_info
from dtf_workload.wallets import WalletPool, load_wallets

log = logging.getLogger("dtf_workload.core")


def read_factory_address(path: Path) -> str:
    if not path.is_file():
        raise SetupError(f"Factory deployment info not found at {path}. Please deploy the factory first.")
    try:
        info = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise SetupError(f"Factory deployment info at {path} is not valid JSON: {e}") from e
    address = info.get("factoryAddress")
    if not address:
        raise SetupError("Factory address not found in deployment info")
    return address


class Workload:
    """Owns everything one simulation run needs and wires it together."""

    def __init__(self, config: SimConfig, gateway, *, rng: Random | None = None,
                 oplog: OperationLog | None = None, stop: asyncio.Event | None = None):
        self.config = config
        self.gateway = gateway
        self.rng = rng or Random(config.seed)
        self.oplog = oplog or OperationLog(config.operation_log_path)
        self.stop = stop or asyncio.Event()

        self.primary = Account.from_key(config.private_key)
        self.registry = FundRegistry()
        self.stats = RunStats()
        self.pool = WalletPool(self.primary)
        self.catalog = TokenCatalog([])
        self.scheduler: Scheduler | None = None

    @classmethod
    def from_config(cls, config: SimConfig, **kw) -> "Workload":
        factory = read_factory_address(config.factory_deployment_path)
        log.info("Using factory at: %s", factory)
        gateway = ContractGateway.connect(
            config.rpc_url,
            factory,
            gas=GasLimits(config.gas_default, config.gas_withdraw_fees, config.gas_transfer_ownership),
            rpc_timeout=config.rpc_timeout,
            receipt_timeout=config.receipt_timeout,
        )
        return cls(config, gateway, **kw)

    async def verify_network(self) -> None:
        try:
            connected = await self.gateway.is_connected()
        except Exception as e:
            raise SetupError(f"RPC endpoint {self.config.rpc_url} unreachable: {e}") from e
        if not connected:
            raise SetupError(f"RPC endpoint {self.config.rpc_url} unreachable")

        log.info("Initializing factory contract...")
        try:
            count = await self.gateway.fund_count()
        except Exception as e:
            raise SetupError(f"Error accessing factory contract: {e}") from e
        log.info("Current number of funds: %s", count)

    async def init(self) -> None:
        log.info("Starting automated DTF operations...")
        await self.verify_network()

        funding_wei = AsyncWeb3.to_wei(self.config.wallet_funding_eth, "ether")
        self.pool = await load_wallets(self.gateway, self.primary, self.config.num_wallets, funding_wei)

        addresses, weth = read_deployment_info(self.config.deployment_info_path)
        self.catalog = await TokenCatalog.resolve(self.gateway, addresses, self.primary.address, weth=weth)
        await prepare_tokens(self.gateway, self.catalog, self.primary, self.pool.wallets, self.config.mint_amount)

        ops = FundOperations(self.gateway, self.registry, self.oplog, self.catalog, self.config, self.rng,
                             stats=self.stats)
        self.scheduler = Scheduler(ops, AllocationPlanner(ops), self.pool, stop=self.stop)

    async def run(self, num_operations: int | None = None) -> None:
        if self.scheduler is None:
            await self.init()
        await self.scheduler.run(num_operations)

    def snapshot_stats(self) -> dict[str, Any]:
        return {
            "funds": len(self.registry),
            "wallets": len(self.pool),
            "tokens": len(self.catalog),
            "iterations": self.scheduler.iterations_done if self.scheduler else 0,
            "operations": self.stats.snapshot(),
        }

    def snapshot_wallets(self) -> list[str]:
        return self.pool.addresses()
