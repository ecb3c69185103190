"""JSON-RPC gateway to the factory, fund and token contracts.

Every state-changing call is built, signed locally, sent and awaited to a
receipt before returning. Nothing is pipelined: the nonce for each send is
read from the pending block, so two sends from one wallet must never overlap.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.logs import DISCARD

from dtf_workload.abi import ERC20_ABI, FACTORY_ABI, FUND_ABI, MINTABLE_ERC20_ABI
from dtf_workload.constants import (
    FUND_CREATED_EVENT,
    MAINNET_DAI,
    MAINNET_UNISWAP_V2_ROUTER,
    MAINNET_WETH,
    NATIVE_TRANSFER_GAS,
    RECEIPT_TIMEOUT,
    RPC_TIMEOUT,
    Capability,
)
from dtf_workload.errors import FundCreatedEventMissing, TransactionReverted
from dtf_workload.models import Allocation, FeeBalances, Token, TokenCapabilities

log = logging.getLogger("dtf_workload.gateway")

to_checksum = AsyncWeb3.to_checksum_address


@dataclass(frozen=True, slots=True)
class GasLimits:
    default: int = 1_000_000
    withdraw_fees: int = 500_000
    transfer_ownership: int = 200_000


class ContractGateway:
    def __init__(
        self,
        w3: AsyncWeb3,
        factory_address: str,
        *,
        gas: GasLimits | None = None,
        rpc_timeout: float = RPC_TIMEOUT,
        receipt_timeout: float = RECEIPT_TIMEOUT,
    ):
        self.w3 = w3
        self.gas = gas or GasLimits()
        self.rpc_timeout = rpc_timeout
        self.receipt_timeout = receipt_timeout
        self.factory_address = to_checksum(factory_address)
        self.factory = w3.eth.contract(address=self.factory_address, abi=FACTORY_ABI)
        self._chain_id: int | None = None

    @classmethod
    def connect(cls, url: str, factory_address: str, **kw) -> "ContractGateway":
        timeout = kw.get("rpc_timeout", RPC_TIMEOUT)
        w3 = AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={"timeout": timeout}))
        return cls(w3, factory_address, **kw)

    # ============================================== #
    # ================ Plumbing ==================== #
    # ============================================== #

    async def _rpc(self, aw):
        return await asyncio.wait_for(aw, timeout=self.rpc_timeout)

    def _fund(self, address: str):
        return self.w3.eth.contract(address=to_checksum(address), abi=FUND_ABI)

    def _token(self, address: str, *, mintable: bool = False):
        abi = MINTABLE_ERC20_ABI if mintable else ERC20_ABI
        return self.w3.eth.contract(address=to_checksum(address), abi=abi)

    async def is_connected(self) -> bool:
        return await self.w3.is_connected()

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._rpc(self.w3.eth.chain_id)
        return self._chain_id

    async def alloc_nonce(self, address: str) -> int:
        return await self._rpc(self.w3.eth.get_transaction_count(address, "pending"))

    async def _sign_send_wait(self, wallet: LocalAccount, tx: dict[str, Any], what: str):
        signed = wallet.sign_transaction(tx)
        tx_hash = await self._rpc(self.w3.eth.send_raw_transaction(signed.raw_transaction))
        txh = tx_hash.to_0x_hex()
        log.info("  Transaction hash: %s", txh)
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionReverted(txh, what)
        log.debug("%s confirmed in block %s", what, receipt["blockNumber"])
        return receipt

    async def _transact(self, wallet: LocalAccount, fn, *, gas: int | None = None):
        what = fn.fn_name
        tx = await fn.build_transaction({
            "from": wallet.address,
            "nonce": await self.alloc_nonce(wallet.address),
            "gas": gas or self.gas.default,
            "chainId": await self.chain_id(),
        })
        return await self._sign_send_wait(wallet, tx, what)

    # ============================================== #
    # ================ Read calls ================== #
    # ============================================== #

    async def native_balance(self, address: str) -> int:
        return await self._rpc(self.w3.eth.get_balance(to_checksum(address)))

    async def fund_count(self) -> int:
        return await self._rpc(self.factory.functions.getFundCount().call())

    async def owner_of(self, fund: str) -> str:
        return await self._rpc(self._fund(fund).functions.owner().call())

    async def share_balance(self, fund: str, holder: str) -> int:
        return await self._rpc(self._fund(fund).functions.balanceOf(to_checksum(holder)).call())

    async def allocations(self, fund: str) -> list[Allocation]:
        raw = await self._rpc(self._fund(fund).functions.getAllocations().call())
        return [Allocation(token=to_checksum(token), weight_bps=int(pct)) for token, pct in raw]

    async def fee_balances(self, fund: str) -> FeeBalances:
        f = self._fund(fund).functions
        dep = await self._rpc(f.getDepositFeeBalance().call())
        wd = await self._rpc(f.getWithdrawalFeeBalance().call())
        return FeeBalances(deposit=int(dep), withdrawal=int(wd))

    async def token_balance(self, token: str, holder: str) -> int:
        return await self._rpc(self._token(token).functions.balanceOf(to_checksum(holder)).call())

    async def allowance(self, token: str, owner: str, spender: str) -> int:
        fn = self._token(token).functions.allowance(to_checksum(owner), to_checksum(spender))
        return await self._rpc(fn.call())

    async def probe_token(self, token: str, holder: str) -> Token:
        """Resolve what a token supports. Never raises for a misbehaving token."""
        address = to_checksum(token)
        c = self._token(address, mintable=True)
        try:
            symbol = await self._rpc(c.functions.symbol().call())
            decimals = await self._rpc(c.functions.decimals().call())
            await self._rpc(c.functions.balanceOf(to_checksum(holder)).call())
        except Exception as e:
            log.error("  Token %s check failed: %s", address, e)
            return Token(address, "?", 18, TokenCapabilities(erc20=Capability.UNSUPPORTED))

        try:
            await self._rpc(c.functions.mint(to_checksum(holder), 0).estimate_gas({"from": to_checksum(holder)}))
            mint = Capability.SUPPORTED
        except Exception as e:
            log.debug("Token %s (%s) has no usable mint: %s", address, symbol, e)
            mint = Capability.UNSUPPORTED
        return Token(address, symbol, int(decimals), TokenCapabilities(erc20=Capability.SUPPORTED, mint=mint))

    async def has_code(self, address: str) -> bool:
        code = await self._rpc(self.w3.eth.get_code(to_checksum(address)))
        return len(code) > 0

    async def network_info(self) -> dict[str, Any]:
        """Chain id, head block and whether well-known mainnet contracts exist (i.e. a mainnet fork)."""
        checks = {
            "weth": await self.has_code(MAINNET_WETH),
            "uniswap_v2_router": await self.has_code(MAINNET_UNISWAP_V2_ROUTER),
            "dai": await self.has_code(MAINNET_DAI),
        }
        return {
            "chain_id": await self.chain_id(),
            "block_number": await self._rpc(self.w3.eth.block_number),
            "contracts": checks,
            "mainnet_fork": all(checks.values()),
        }

    # ============================================== #
    # ============ State-changing calls ============ #
    # ============================================== #

    async def send_native(self, wallet: LocalAccount, to: str, value_wei: int):
        tx = {
            "to": to_checksum(to),
            "value": value_wei,
            "gas": NATIVE_TRANSFER_GAS,
            "gasPrice": await self._rpc(self.w3.eth.gas_price),
            "nonce": await self.alloc_nonce(wallet.address),
            "chainId": await self.chain_id(),
        }
        return await self._sign_send_wait(wallet, tx, "transfer")

    async def create_fund(self, wallet: LocalAccount, name: str, deposit_fee: int, withdrawal_fee: int,
                          management_fee: int, performance_fee: int) -> str:
        fn = self.factory.functions.createFund(name, deposit_fee, withdrawal_fee, management_fee, performance_fee)
        receipt = await self._transact(wallet, fn)
        for ev in self.factory.events.FundCreated().process_receipt(receipt, errors=DISCARD):
            if ev["event"] == FUND_CREATED_EVENT:
                return to_checksum(ev["args"]["fund"])
        raise FundCreatedEventMissing(receipt["transactionHash"].to_0x_hex())

    async def approve(self, wallet: LocalAccount, token: str, spender: str, amount: int):
        fn = self._token(token).functions.approve(to_checksum(spender), amount)
        return await self._transact(wallet, fn)

    async def mint(self, wallet: LocalAccount, token: str, to: str, amount: int):
        fn = self._token(token, mintable=True).functions.mint(to_checksum(to), amount)
        return await self._transact(wallet, fn)

    async def deposit(self, wallet: LocalAccount, fund: str, token: str, amount: int):
        fn = self._fund(fund).functions.deposit(to_checksum(token), amount)
        return await self._transact(wallet, fn)

    async def withdraw(self, wallet: LocalAccount, fund: str, shares: int):
        return await self._transact(wallet, self._fund(fund).functions.withdraw(shares))

    async def set_allocation(self, wallet: LocalAccount, fund: str, token: str, weight_bps: int):
        fn = self._fund(fund).functions.setAllocation(to_checksum(token), weight_bps)
        return await self._transact(wallet, fn)

    async def withdraw_fees(self, wallet: LocalAccount, fund: str, to: str, amount: int):
        fn = self._fund(fund).functions.withdrawDepositFees(to_checksum(to), amount)
        return await self._transact(wallet, fn, gas=self.gas.withdraw_fees)

    async def transfer_ownership(self, wallet: LocalAccount, fund: str, new_owner: str):
        fn = self._fund(fund).functions.transferOwnership(to_checksum(new_owner))
        return await self._transact(wallet, fn, gas=self.gas.transfer_ownership)
