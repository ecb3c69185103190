"""Target-portfolio planning for a fund.

A plan assigns absolute weights in basis points to up to `max_tokens`
distinct tokens. Whatever is left of the 10000 bps budget stays in the fund's
reserve asset.
"""

import logging
from collections.abc import Sequence
from random import Random
from typing import TypeVar

from eth_account.signers.local import LocalAccount

from dtf_workload.constants import BPS_DENOMINATOR, OpType, Outcome
from dtf_workload.oplog import SetAllocationEntry
from dtf_workload.operations import FundOperations

log = logging.getLogger("dtf_workload.planner")

T = TypeVar("T")


def plan_allocations(
    tokens: Sequence[T],
    rng: Random,
    *,
    min_bps: int,
    max_bps: int,
    max_tokens: int = 3,
) -> list[tuple[T, int]]:
    """Pick k random distinct tokens and weights for them.

    Every weight but the last is drawn uniformly from [min_bps, min(max_bps, remaining)];
    the last one takes the remaining budget, clamped to max_bps. Selection stops early
    once min(max_bps, remaining) <= min_bps, so the plan can hold fewer than k tokens.
    """
    if not tokens:
        return []

    available = list(tokens)
    k = rng.randint(1, min(max_tokens, len(available)))
    plan: list[tuple[T, int]] = []
    total = 0
    for i in range(k):
        ceiling = min(max_bps, BPS_DENOMINATOR - total)
        if ceiling <= min_bps:
            break
        token = available.pop(rng.randrange(len(available)))
        weight = ceiling if i == k - 1 else rng.randint(min_bps, ceiling)
        plan.append((token, weight))
        total += weight
    return plan


class AllocationPlanner:
    def __init__(self, ops: FundOperations):
        self.ops = ops

    async def set_allocations(self, wallet: LocalAccount, fund: str) -> bool:
        """Plan and submit allocations for `fund`. True if at least one allocation went through."""
        ops, op = self.ops, OpType.SET_ALLOCATION
        cfg = ops.config
        try:
            if not await ops.is_owner(wallet, fund):
                log.info("  %s is not the owner of fund %s", wallet.address, fund)
                ops.stats.record(op, Outcome.SKIPPED)
                return False

            valid = ops.catalog.usable
            if not valid:
                log.info("  No valid tokens found for allocation")
                ops.stats.record(op, Outcome.SKIPPED)
                return False
            log.info("  Found %s valid tokens for allocation", len(valid))

            plan = plan_allocations(
                valid,
                ops.rng,
                min_bps=cfg.allocation_min_bps,
                max_bps=cfg.allocation_max_bps,
                max_tokens=cfg.allocation_max_tokens,
            )
        except Exception as e:
            log.error("  Error setting allocations: %s", e)
            ops.stats.record(op, Outcome.FAILED)
            return False

        if not plan:
            log.info("  No allocation fits between %s and %s bps, skipping", cfg.allocation_min_bps, cfg.allocation_max_bps)
            ops.stats.record(op, Outcome.SKIPPED)
            return False

        log.info("[%s] Setting allocations for %s tokens in fund %s", wallet.address, len(plan), fund)
        succeeded = 0
        for token, weight in plan:
            log.info("  Setting allocation for %s (%s) to %s%%", token.symbol, token.address, weight / 100)
            try:
                await ops.ensure_allowance(wallet, token.address, fund)
                await ops.gateway.set_allocation(wallet, fund, token.address, weight)
            except Exception as e:
                log.error("  Error setting allocation for token %s: %s", token.address, e)
                ops.stats.record(op, Outcome.FAILED)
                continue
            ops.record_entry(SetAllocationEntry(
                wallet=wallet.address,
                fund=fund,
                token=token.address,
                allocation=weight,
            ))
            ops.stats.record(op, Outcome.SUCCEEDED)
            succeeded += 1

        log.info("  %s/%s allocations set", succeeded, len(plan))
        return succeeded > 0
