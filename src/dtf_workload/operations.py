"""Single fund operations against the gateway.

Each public coroutine is one attempted operation: it checks its preconditions
with read calls, submits at most the state changes it needs, logs the result
to the operation log and counts the outcome. No exception escapes; a failed
operation returns False (or None for fund creation).

All share, amount and fee arithmetic is integer arithmetic on base units.
"""

import logging
import time
from collections import Counter
from collections.abc import Callable
from random import Random

from eth_account.signers.local import LocalAccount

from dtf_workload.config import FeeRanges, SimConfig
from dtf_workload.constants import OpType, Outcome
from dtf_workload.models import Fund
from dtf_workload.oplog import (
    CreateFundEntry,
    DepositEntry,
    LogEntry,
    OperationLog,
    TransferOwnershipEntry,
    WithdrawEntry,
    WithdrawFeesEntry,
)
from dtf_workload.registry import FundRegistry
from dtf_workload.tokens import TokenCatalog

log = logging.getLogger("dtf_workload.ops")


class RunStats:
    """Outcome tallies per operation type."""

    def __init__(self) -> None:
        self._counts: Counter[tuple[str, str]] = Counter()

    def record(self, op: OpType, outcome: Outcome) -> None:
        self._counts[(str(op), str(outcome))] += 1

    def count(self, op: OpType, outcome: Outcome | None = None) -> int:
        if outcome is None:
            return sum(n for (o, _), n in self._counts.items() if o == op)
        return self._counts[(str(op), str(outcome))]

    def snapshot(self) -> dict[str, dict[str, int]]:
        out: dict[str, dict[str, int]] = {}
        for (op, outcome), n in sorted(self._counts.items()):
            out.setdefault(op, {})[outcome] = n
        return out


def draw_fees(fees: FeeRanges, rng: Random) -> tuple[int, int, int, int]:
    """(deposit, withdrawal, management, performance) fees in bps, each drawn independently."""
    return (
        rng.randint(*fees.deposit),
        rng.randint(*fees.withdrawal),
        rng.randint(*fees.management),
        rng.randint(*fees.performance),
    )


def compute_deposit_amount(balance: int, min_amount: int, max_amount: int, rng: Random) -> int:
    """Random amount in [min, max] clamped to balance; the whole balance if it is below min."""
    if balance <= 0:
        return 0
    if min_amount > balance:
        return balance
    return rng.randint(min_amount, min(max_amount, balance))


def compute_share_withdrawal(shares: int, percentage: int) -> int:
    return shares * percentage // 100


def compute_fee_withdrawal(total_fees: int, percentage: int) -> int:
    return total_fees * percentage // 100


class FundOperations:
    def __init__(
        self,
        gateway,
        registry: FundRegistry,
        oplog: OperationLog,
        catalog: TokenCatalog,
        config: SimConfig,
        rng: Random,
        *,
        stats: RunStats | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.registry = registry
        self.oplog = oplog
        self.catalog = catalog
        self.config = config
        self.rng = rng
        self.stats = stats or RunStats()
        self.clock = clock

    def _skip(self, op: OpType, msg: str, *args) -> bool:
        log.info("  " + msg, *args)
        self.stats.record(op, Outcome.SKIPPED)
        return False

    def _fail(self, op: OpType, msg: str, *args) -> bool:
        log.error("  " + msg, *args)
        self.stats.record(op, Outcome.FAILED)
        return False

    def _ok(self, op: OpType) -> bool:
        self.stats.record(op, Outcome.SUCCEEDED)
        return True

    def record_entry(self, entry: LogEntry) -> None:
        """Append to the operation log. A write error is logged, never raised."""
        try:
            self.oplog.append(entry)
        except Exception as e:
            log.error("  Error writing %s to operation log %s: %s", entry.type, self.oplog.path, e)

    async def is_owner(self, wallet: LocalAccount, fund: str) -> bool:
        owner = await self.gateway.owner_of(fund)
        return owner.lower() == wallet.address.lower()

    async def create_fund(self, wallet: LocalAccount) -> Fund | None:
        op = OpType.CREATE_FUND
        name = f"{self.config.fund_name_prefix} {int(self.clock() * 1000)}"
        dep, wd, mgmt, perf = draw_fees(self.config.fees, self.rng)

        log.info("[%s] Creating new fund: %s", wallet.address, name)
        log.info("  Deposit Fee: %s%%  Withdrawal Fee: %s%%  Management Fee: %s%%  Performance Fee: %s%%",
                 dep / 100, wd / 100, mgmt / 100, perf / 100)
        try:
            address = await self.gateway.create_fund(wallet, name, dep, wd, mgmt, perf)
        except Exception as e:
            self._fail(op, "Error creating fund: %s", e)
            return None
        log.info("  Fund created at address: %s", address)

        fund = self.registry.add(Fund(
            address=address,
            name=name,
            owner=wallet.address,
            deposit_fee=dep,
            withdrawal_fee=wd,
            management_fee=mgmt,
            performance_fee=perf,
            created_at=int(self.clock()),
        ))
        self.record_entry(CreateFundEntry(
            wallet=wallet.address,
            fund=address,
            name=name,
            deposit_fee=dep,
            withdrawal_fee=wd,
            management_fee=mgmt,
            performance_fee=perf,
        ))
        self._ok(op)
        return fund

    async def ensure_allowance(self, wallet: LocalAccount, token: str, spender: str) -> bool:
        """Let `spender` move the wallet's whole balance of `token`. No transaction if it already can."""
        balance = await self.gateway.token_balance(token, wallet.address)
        if balance <= 0:
            log.info("  No %s tokens to approve for %s", token, wallet.address)
            return False
        current = await self.gateway.allowance(token, wallet.address, spender)
        if current >= balance:
            log.debug("  %s already approved for %s", token, spender)
            return True
        log.info("  Approving %s units of %s for %s", balance, token, spender)
        await self.gateway.approve(wallet, token, spender, balance)
        return True

    async def deposit(self, wallet: LocalAccount, fund: str) -> bool:
        op = OpType.DEPOSIT
        try:
            allocations = await self.gateway.allocations(fund)
            if not allocations:
                return self._skip(op, "Fund %s has no allocations set, skipping deposit", fund)

            alloc = self.rng.choice(allocations)
            token = self.catalog.get(alloc.token)
            if token is None or not token.capabilities.usable:
                return self._skip(op, "Token %s is not valid or accessible, skipping deposit", alloc.token)

            await self.ensure_allowance(wallet, token.address, fund)

            balance = await self.gateway.token_balance(token.address, wallet.address)
            if balance <= 0:
                return self._skip(op, "Wallet %s has no %s tokens, skipping deposit", wallet.address, token.symbol)

            amount = compute_deposit_amount(
                balance,
                token.to_units(self.config.deposit_min),
                token.to_units(self.config.deposit_max),
                self.rng,
            )
            log.info("[%s] Depositing %s %s (base units) into fund %s", wallet.address, amount, token.symbol, fund)
            await self.gateway.deposit(wallet, fund, token.address, amount)
        except Exception as e:
            return self._fail(op, "Error depositing into fund %s: %s", fund, e)
        log.info("  Deposit successful")
        self.record_entry(DepositEntry(wallet=wallet.address, fund=fund, token=token.address, amount=amount))
        return self._ok(op)

    async def withdraw(self, wallet: LocalAccount, fund: str) -> bool:
        op = OpType.WITHDRAW
        try:
            shares = await self.gateway.share_balance(fund, wallet.address)
            if shares <= 0:
                return self._skip(op, "Wallet %s has no shares in fund %s, skipping withdrawal", wallet.address, fund)

            pct = self.rng.randint(*self.config.withdraw_percentage)
            to_withdraw = compute_share_withdrawal(shares, pct)
            if to_withdraw == 0:
                return self._skip(op, "%s%% of %s shares rounds to zero, skipping withdrawal", pct, shares)

            log.info("[%s] Withdrawing %s%% (%s shares) from fund %s", wallet.address, pct, to_withdraw, fund)
            await self.gateway.withdraw(wallet, fund, to_withdraw)
        except Exception as e:
            return self._fail(op, "Error withdrawing from fund %s: %s", fund, e)
        log.info("  Withdrawal successful")
        self.record_entry(WithdrawEntry(wallet=wallet.address, fund=fund, shares=to_withdraw, percentage=pct))
        return self._ok(op)

    async def withdraw_fees(self, wallet: LocalAccount, fund: str) -> bool:
        op = OpType.WITHDRAW_FEES
        try:
            if not await self.is_owner(wallet, fund):
                return self._skip(op, "%s is not the owner of fund %s", wallet.address, fund)

            balances = await self.gateway.fee_balances(fund)
            if balances.total <= 0:
                return self._skip(op, "No fees to withdraw from fund %s", fund)

            pct = self.rng.randint(*self.config.fee_withdrawal_percentage)
            amount = compute_fee_withdrawal(balances.total, pct)
            if amount <= 0:
                return self._skip(op, "Calculated fee withdrawal amount is 0 for fund %s", fund)

            log.info("[%s] Withdrawing %s%% (%s) of fees from fund %s", wallet.address, pct, amount, fund)
            await self.gateway.withdraw_fees(wallet, fund, wallet.address, amount)
        except Exception as e:
            return self._fail(op, "Error withdrawing fees from fund %s: %s", fund, e)
        log.info("  Fee withdrawal successful")
        self.registry.record_fee_withdrawal(fund)
        self.record_entry(WithdrawFeesEntry(wallet=wallet.address, fund=fund, amount=amount, percentage=pct))
        return self._ok(op)

    async def transfer_ownership(self, current: LocalAccount, new_owner: LocalAccount, fund: str) -> bool:
        op = OpType.TRANSFER_OWNERSHIP
        try:
            if not await self.is_owner(current, fund):
                return self._skip(op, "%s is not the owner of fund %s", current.address, fund)

            log.info("[%s] Transferring ownership of fund %s to %s", current.address, fund, new_owner.address)
            await self.gateway.transfer_ownership(current, fund, new_owner.address)
        except Exception as e:
            return self._fail(op, "Error transferring ownership of %s: %s", fund, e)
        log.info("  Ownership transferred successfully")
        self.registry.record_owner(fund, new_owner.address)
        self.record_entry(TransferOwnershipEntry(
            wallet=current.address,
            fund=fund,
            previous_owner=current.address,
            new_owner=new_owner.address,
        ))
        return self._ok(op)
