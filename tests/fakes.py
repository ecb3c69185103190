"""In-memory stand-ins for the contract gateway and its configuration."""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from pathlib import Path

from eth_account import Account

from dtf_workload.config import SimConfig, config_file, load_config
from dtf_workload.constants import Capability
from dtf_workload.errors import FundCreatedEventMissing
from dtf_workload.models import Allocation, FeeBalances, Token, TokenCapabilities

TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"
TOKEN_C = "0x3333333333333333333333333333333333333333"
WETH = "0x4444444444444444444444444444444444444444"

ONE = 10**18


def wallet(n: int):
    return Account.from_key("0x" + f"{n:064x}")


def token(address: str, symbol: str = "TKN", *, mint: bool = True, decimals: int = 18) -> Token:
    caps = TokenCapabilities(
        erc20=Capability.SUPPORTED,
        mint=Capability.SUPPORTED if mint else Capability.UNSUPPORTED,
    )
    return Token(address, symbol, decimals, caps)


def make_config(tmp: str | Path | None = None, **overrides) -> SimConfig:
    config = SimConfig.from_cfg(load_config(config_file))
    if tmp is not None:
        tmp = Path(tmp)
        overrides.setdefault("operation_log_path", tmp / "dtf-operations-log.json")
        overrides.setdefault("deployment_info_path", tmp / "deployment-info.json")
        overrides.setdefault("factory_deployment_path", tmp / "factory-deployment-full.json")
    overrides.setdefault("operation_interval", 0.0)
    return dataclasses.replace(config, **overrides)


class FakeGateway:
    """Enough contract behaviour for the workload to run against.

    Every call is recorded in `calls` as (method, args). Put an exception in
    `fail[method]` to make that method raise it.
    """

    def __init__(self, tokens: list[Token] | None = None):
        self.calls: list[tuple[str, tuple]] = []
        self.fail: dict[str, Exception] = {}
        self.reject_tokens: set[str] = set()
        self.connected = True
        self.missing_event = False

        self.tokens = {t.address.lower(): t for t in (tokens or [])}
        self.owners: dict[str, str] = {}
        self.shares: dict[tuple[str, str], int] = defaultdict(int)
        self.allocs: dict[str, list[Allocation]] = defaultdict(list)
        self.fees: dict[str, FeeBalances] = {}
        self.balances: dict[tuple[str, str], int] = defaultdict(int)
        self.allowances: dict[tuple[str, str, str], int] = defaultdict(int)
        self._next_fund = 0

    def _call(self, name: str, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name: str) -> list[tuple]:
        return [args for n, args in self.calls if n == name]

    def give(self, token_addr: str, holder: str, amount: int) -> None:
        self.balances[(token_addr.lower(), holder.lower())] = amount

    # reads

    async def is_connected(self) -> bool:
        return self.connected

    async def native_balance(self, address: str) -> int:
        self._call("native_balance", address)
        return 10_000 * 10**18

    async def fund_count(self) -> int:
        self._call("fund_count")
        return len(self.owners)

    async def owner_of(self, fund: str) -> str:
        self._call("owner_of", fund)
        return self.owners[fund.lower()]

    async def share_balance(self, fund: str, holder: str) -> int:
        self._call("share_balance", fund, holder)
        return self.shares[(fund.lower(), holder.lower())]

    async def allocations(self, fund: str) -> list[Allocation]:
        self._call("allocations", fund)
        return list(self.allocs[fund.lower()])

    async def fee_balances(self, fund: str) -> FeeBalances:
        self._call("fee_balances", fund)
        return self.fees.get(fund.lower(), FeeBalances(0, 0))

    async def token_balance(self, token_addr: str, holder: str) -> int:
        self._call("token_balance", token_addr, holder)
        return self.balances[(token_addr.lower(), holder.lower())]

    async def allowance(self, token_addr: str, owner: str, spender: str) -> int:
        self._call("allowance", token_addr, owner, spender)
        return self.allowances[(token_addr.lower(), owner.lower(), spender.lower())]

    async def probe_token(self, address: str, holder: str) -> Token:
        self._call("probe_token", address, holder)
        found = self.tokens.get(address.lower())
        if found is None:
            return Token(address, "?", 18, TokenCapabilities(erc20=Capability.UNSUPPORTED))
        return found

    async def network_info(self) -> dict:
        self._call("network_info")
        return {"chain_id": 31337, "block_number": 1, "contracts": {}, "mainnet_fork": False}

    # writes

    async def send_native(self, wallet, to: str, value_wei: int):
        self._call("send_native", wallet.address, to, value_wei)

    async def create_fund(self, wallet, name, deposit_fee, withdrawal_fee, management_fee, performance_fee) -> str:
        self._call("create_fund", wallet.address, name, deposit_fee, withdrawal_fee, management_fee, performance_fee)
        if self.missing_event:
            raise FundCreatedEventMissing("0xdead")
        self._next_fund += 1
        address = "0x" + f"{0xF0000 + self._next_fund:040x}"
        self.owners[address.lower()] = wallet.address
        return address

    async def approve(self, wallet, token_addr: str, spender: str, amount: int):
        self._call("approve", wallet.address, token_addr, spender, amount)
        self.allowances[(token_addr.lower(), wallet.address.lower(), spender.lower())] = amount

    async def mint(self, wallet, token_addr: str, to: str, amount: int):
        self._call("mint", wallet.address, token_addr, to, amount)
        self.balances[(token_addr.lower(), to.lower())] += amount

    async def deposit(self, wallet, fund: str, token_addr: str, amount: int):
        self._call("deposit", wallet.address, fund, token_addr, amount)
        self.balances[(token_addr.lower(), wallet.address.lower())] -= amount
        self.shares[(fund.lower(), wallet.address.lower())] += amount

    async def withdraw(self, wallet, fund: str, shares: int):
        self._call("withdraw", wallet.address, fund, shares)
        self.shares[(fund.lower(), wallet.address.lower())] -= shares

    async def set_allocation(self, wallet, fund: str, token_addr: str, weight_bps: int):
        self._call("set_allocation", wallet.address, fund, token_addr, weight_bps)
        if token_addr.lower() in self.reject_tokens:
            raise RuntimeError(f"setAllocation reverted for {token_addr}")
        allocs = [a for a in self.allocs[fund.lower()] if a.token.lower() != token_addr.lower()]
        self.allocs[fund.lower()] = [*allocs, Allocation(token_addr, weight_bps)]

    async def withdraw_fees(self, wallet, fund: str, to: str, amount: int):
        self._call("withdraw_fees", wallet.address, fund, to, amount)
        self.fees[fund.lower()] = FeeBalances(0, 0)

    async def transfer_ownership(self, wallet, fund: str, new_owner: str):
        self._call("transfer_ownership", wallet.address, fund, new_owner)
        self.owners[fund.lower()] = new_owner
