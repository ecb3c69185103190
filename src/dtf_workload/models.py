"""Domain data structures shared by the gateway and the workload."""

from dataclasses import dataclass
from decimal import Decimal

from dtf_workload.constants import Capability


@dataclass(frozen=True, slots=True)
class TokenCapabilities:
    """What a token contract answered to when probed at start-up."""

    erc20: Capability
    mint: Capability = Capability.UNSUPPORTED

    @property
    def usable(self) -> bool:
        return self.erc20 is Capability.SUPPORTED

    @property
    def mintable(self) -> bool:
        return self.usable and self.mint is Capability.SUPPORTED


@dataclass(frozen=True, slots=True)
class Token:
    address: str
    symbol: str
    decimals: int
    capabilities: TokenCapabilities

    def to_units(self, amount) -> int:
        """Whole-token Decimal (or str) to base units."""
        return int(Decimal(str(amount)).scaleb(self.decimals))


@dataclass(frozen=True, slots=True)
class Allocation:
    token: str
    weight_bps: int


@dataclass(frozen=True, slots=True)
class FeeBalances:
    deposit: int
    withdrawal: int

    @property
    def total(self) -> int:
        return self.deposit + self.withdrawal


@dataclass(slots=True)
class Fund:
    address: str
    name: str
    owner: str
    deposit_fee: int  # bps
    withdrawal_fee: int
    management_fee: int
    performance_fee: int
    created_at: int  # epoch seconds
    deposit_fee_balance: int | None = None
    withdrawal_fee_balance: int | None = None

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "name": self.name,
            "owner": self.owner,
            "deposit_fee": self.deposit_fee,
            "withdrawal_fee": self.withdrawal_fee,
            "management_fee": self.management_fee,
            "performance_fee": self.performance_fee,
            "created_at": self.created_at,
            "deposit_fee_balance": self.deposit_fee_balance,
            "withdrawal_fee_balance": self.withdrawal_fee_balance,
        }
