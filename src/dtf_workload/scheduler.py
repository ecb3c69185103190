"""Two-phase random operation driver.

Seeding creates the configured number of funds, allocates them and runs a few
deposits and withdrawals against each. Exploration then picks a random fund and
a random action per iteration. One operation runs at a time, start to finish.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from random import Random

from dtf_workload.constants import Action
from dtf_workload.models import Fund
from dtf_workload.operations import FundOperations
from dtf_workload.planner import AllocationPlanner
from dtf_workload.wallets import WalletPool

log = logging.getLogger("dtf_workload.scheduler")


class Scheduler:
    def __init__(
        self,
        ops: FundOperations,
        planner: AllocationPlanner,
        pool: WalletPool,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        stop: asyncio.Event | None = None,
    ):
        self.ops = ops
        self.planner = planner
        self.pool = pool
        self.config = ops.config
        self.rng: Random = ops.rng
        self.stop = stop or asyncio.Event()
        self.sleep = sleep or self._pause
        self.iterations_done = 0

    async def _pause(self, seconds: float) -> None:
        """Sleep, but wake up as soon as a stop is requested."""
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self.stop.wait(), timeout=seconds)

    @property
    def registry(self):
        return self.ops.registry

    def _rand_wallet(self):
        return self.rng.choice(self.pool.wallets)

    async def run(self, num_operations: int | None = None) -> None:
        await self.seed_funds()
        await self.explore(num_operations)
        log.info("=== Operations Complete ===")
        log.info("Created %s funds", len(self.registry))
        log.info("Performed %s operations", self.iterations_done)
        log.info("Stats: %s", self.ops.stats.snapshot())

    async def seed_funds(self) -> None:
        log.info("=== Creating Funds ===")
        for _ in range(self.config.num_funds):
            if self.stop.is_set():
                return
            creator = self._rand_wallet()
            fund = await self.ops.create_fund(creator)
            if fund is None:
                continue

            await self.planner.set_allocations(creator, fund.address)

            for _ in range(self.rng.randint(*self.config.deposits_per_new_fund)):
                await self.ops.deposit(self._rand_wallet(), fund.address)
            for _ in range(self.rng.randint(*self.config.withdrawals_per_new_fund)):
                await self.ops.withdraw(self._rand_wallet(), fund.address)

    async def explore(self, num_operations: int | None = None) -> None:
        log.info("=== Performing Random Operations ===")
        n = self.config.num_operations if num_operations is None else num_operations
        actions = list(Action)
        for i in range(n):
            if self.stop.is_set():
                log.info("Stop requested, ending exploration after %s operations", i)
                return
            if not len(self.registry):
                log.info("No funds available for operations")
                return

            fund = self.registry.choice(self.rng)
            action = self.rng.choice(actions)
            log.info("=== Operation %s/%s: %s on fund %s ===", i + 1, n, action, fund.address)
            try:
                await self.dispatch(action, fund)
                await self.maybe_withdraw_fees(fund)
                await self.maybe_transfer_ownership(fund)
            except Exception as e:
                log.error("  Error performing operation %s: %s", action, e)
            self.iterations_done += 1

            if i < n - 1:
                log.debug("  Waiting %ss before next operation...", self.config.operation_interval)
                await self.sleep(self.config.operation_interval)

    async def dispatch(self, action: Action, fund: Fund) -> bool:
        match action:
            case Action.DEPOSIT:
                return await self.ops.deposit(self._rand_wallet(), fund.address)
            case Action.WITHDRAW:
                return await self.ops.withdraw(self._rand_wallet(), fund.address)
            case Action.ALLOCATE:
                owner = self.pool.find(fund.owner)
                if owner is None:
                    log.info("  Could not find owner wallet for fund %s", fund.address)
                    return False
                return await self.planner.set_allocations(owner, fund.address)
        raise ValueError(f"Unknown action {action!r}")

    async def maybe_withdraw_fees(self, fund: Fund) -> bool:
        if self.rng.random() >= self.config.fee_withdrawal_probability:
            return False
        owner = self.pool.find(fund.owner)
        if owner is None:
            return False
        return await self.ops.withdraw_fees(owner, fund.address)

    async def maybe_transfer_ownership(self, fund: Fund) -> bool:
        if self.config.ownership_transfer_probability <= 0 or len(self.pool) < 2:
            return False
        if self.rng.random() >= self.config.ownership_transfer_probability:
            return False
        owner = self.pool.find(fund.owner)
        if owner is None:
            return False
        new_owner = self.rng.choice([w for w in self.pool if w.address != owner.address])
        return await self.ops.transfer_ownership(owner, new_owner, fund.address)
