from typing import Final
from enum import StrEnum

# Hardhat's well-known account #0. Only meaningful on a local node or fork.
deployer_account: Final = {
    "address": "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "private_key": "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
}

DEPLOYER = deployer_account

BPS_DENOMINATOR: Final = 10_000

# Mainnet contracts used to tell a mainnet fork from a bare dev chain
MAINNET_WETH: Final = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
MAINNET_UNISWAP_V2_ROUTER: Final = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
MAINNET_DAI: Final = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


class OpType(StrEnum):
    CREATE_FUND        = "create_fund"
    DEPOSIT            = "deposit"
    WITHDRAW           = "withdraw"
    SET_ALLOCATION     = "set_allocation"
    WITHDRAW_FEES      = "withdraw_fees"
    TRANSFER_OWNERSHIP = "transfer_ownership"


class Action(StrEnum):
    """Actions the exploration phase picks from."""
    DEPOSIT  = "deposit"
    WITHDRAW = "withdraw"
    ALLOCATE = "allocate"


class Outcome(StrEnum):
    SUCCEEDED = "SUCCEEDED"
    SKIPPED   = "SKIPPED"
    FAILED    = "FAILED"


class Capability(StrEnum):
    SUPPORTED   = "SUPPORTED"
    UNSUPPORTED = "UNSUPPORTED"


FUND_CREATED_EVENT: Final = "FundCreated"

NATIVE_TRANSFER_GAS = 21_000
RPC_TIMEOUT = 30.0
RECEIPT_TIMEOUT = 120.0

__all__ = [
    "BPS_DENOMINATOR",
    "DEPLOYER",
    "FUND_CREATED_EVENT",
    "MAINNET_DAI",
    "MAINNET_UNISWAP_V2_ROUTER",
    "MAINNET_WETH",
    "NATIVE_TRANSFER_GAS",
    "RECEIPT_TIMEOUT",
    "RPC_TIMEOUT",

    ######
    "Action",
    "Capability",
    "OpType",
    "Outcome",
]
