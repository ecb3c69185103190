import os
import tomllib
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from dtf_workload.constants import DEPLOYER

pkg_root = Path(__file__).parent
config_file = pkg_root / "config.toml"


def load_config(path: str | Path | None = None) -> dict:
    """Read the TOML config and apply environment overrides."""
    path = Path(path or os.getenv("DTF_CONFIG") or config_file)
    conf = tomllib.loads(path.read_text())

    rpc = conf.setdefault("rpc", {})
    rpc["url"] = os.getenv("RPC_URL", rpc.get("url", "http://127.0.0.1:8545"))

    dep = conf.setdefault("deployer", {})
    dep["private_key"] = os.getenv("PRIVATE_KEY", dep.get("private_key", DEPLOYER["private_key"]))

    ops = conf.setdefault("operations", {})
    if (seed := os.getenv("DTF_SEED")) is not None:
        ops["seed"] = int(seed)
    return conf


def _range(v) -> tuple[int, int]:
    lo, hi = (int(x) for x in v)
    if lo > hi:
        raise ValueError(f"Invalid range [{lo}, {hi}]")
    return lo, hi


@dataclass(frozen=True, slots=True)
class FeeRanges:
    deposit: tuple[int, int]
    withdrawal: tuple[int, int]
    management: tuple[int, int]
    performance: tuple[int, int]


@dataclass(frozen=True, slots=True)
class SimConfig:
    rpc_url: str
    rpc_timeout: float
    receipt_timeout: float
    private_key: str

    factory_deployment_path: Path
    deployment_info_path: Path
    operation_log_path: Path

    num_wallets: int
    wallet_funding_eth: Decimal

    num_funds: int
    fund_name_prefix: str
    fees: FeeRanges

    allocation_min_bps: int
    allocation_max_bps: int
    allocation_max_tokens: int

    deposit_min: Decimal  # whole token units
    deposit_max: Decimal
    deposits_per_new_fund: tuple[int, int]

    withdraw_percentage: tuple[int, int]
    withdrawals_per_new_fund: tuple[int, int]

    fee_withdrawal_probability: float
    fee_withdrawal_percentage: tuple[int, int]

    ownership_transfer_probability: float

    num_operations: int
    operation_interval: float
    seed: int | None

    mint_amount: Decimal

    gas_default: int
    gas_withdraw_fees: int
    gas_transfer_ownership: int

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_cfg(cls, conf: dict) -> "SimConfig":
        rpc, paths, w, f = conf["rpc"], conf["paths"], conf["wallets"], conf["funds"]
        alloc, dep, wd, fees = conf["allocation"], conf["deposit"], conf["withdraw"], conf["fees"]
        ops, gas = conf["operations"], conf["gas"]
        api = conf.get("api", {})

        deposit_min, deposit_max = Decimal(str(dep["min"])), Decimal(str(dep["max"]))
        if deposit_min > deposit_max:
            raise ValueError("deposit.min exceeds deposit.max")
        if not 0 < int(alloc["min_bps"]) < int(alloc["max_bps"]) <= 10_000:
            # min == max would leave every allocation plan empty
            raise ValueError("allocation bps bounds must satisfy 0 < min < max <= 10000")

        return cls(
            rpc_url=rpc["url"],
            rpc_timeout=float(rpc.get("timeout", 30.0)),
            receipt_timeout=float(rpc.get("receipt_timeout", 120.0)),
            private_key=conf["deployer"]["private_key"],
            factory_deployment_path=Path(paths["factory_deployment"]),
            deployment_info_path=Path(paths["deployment_info"]),
            operation_log_path=Path(paths["operation_log"]),
            num_wallets=int(w["number"]),
            wallet_funding_eth=Decimal(str(w["funding_eth"])),
            num_funds=int(f["number"]),
            fund_name_prefix=f["name_prefix"],
            fees=FeeRanges(
                deposit=_range(f["deposit_fee"]),
                withdrawal=_range(f["withdrawal_fee"]),
                management=_range(f["management_fee"]),
                performance=_range(f["performance_fee"]),
            ),
            allocation_min_bps=int(alloc["min_bps"]),
            allocation_max_bps=int(alloc["max_bps"]),
            allocation_max_tokens=int(alloc.get("max_tokens", 3)),
            deposit_min=deposit_min,
            deposit_max=deposit_max,
            deposits_per_new_fund=_range(dep["per_new_fund"]),
            withdraw_percentage=_range(wd["percentage"]),
            withdrawals_per_new_fund=_range(wd["per_new_fund"]),
            fee_withdrawal_probability=float(fees["withdrawal_probability"]),
            fee_withdrawal_percentage=_range(fees["percentage"]),
            ownership_transfer_probability=float(conf.get("ownership", {}).get("transfer_probability", 0.0)),
            num_operations=int(ops["number"]),
            operation_interval=float(ops["interval"]),
            seed=ops.get("seed"),
            mint_amount=Decimal(str(conf.get("tokens", {}).get("mint_amount", "1000"))),
            gas_default=int(gas["default"]),
            gas_withdraw_fees=int(gas["withdraw_fees"]),
            gas_transfer_ownership=int(gas["transfer_ownership"]),
            api_host=api.get("host", "0.0.0.0"),
            api_port=int(api.get("port", 8000)),
        )
