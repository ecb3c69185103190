"""Append-only JSON operation log.

The whole file is one JSON array, read and rewritten wholesale on every append.
A single sequential writer is assumed; there is no locking.
"""

import json
import logging
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar

from dtf_workload.constants import OpType

log = logging.getLogger("dtf_workload.oplog")


def stringify_ints(value: Any) -> Any:
    """Recursively turn every int into its decimal string. bools are left alone."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {k: stringify_ints(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [stringify_ints(v) for v in value]
    return value


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class LogEntry:
    type: ClassVar[OpType]
    # Payload attribute -> key on disk, for keys that are not valid identifiers or differ in case
    keys: ClassVar[dict[str, str]] = {}

    wallet: str
    fund: str

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {"type": str(self.type)}
        for f in fields(self):
            rec[self.keys.get(f.name, f.name)] = getattr(self, f.name)
        return rec


@dataclass(frozen=True, slots=True)
class CreateFundEntry(LogEntry):
    type = OpType.CREATE_FUND
    keys = {
        "deposit_fee": "depositFee",
        "withdrawal_fee": "withdrawalFee",
        "management_fee": "managementFee",
        "performance_fee": "performanceFee",
    }

    name: str
    deposit_fee: int
    withdrawal_fee: int
    management_fee: int
    performance_fee: int


@dataclass(frozen=True, slots=True)
class DepositEntry(LogEntry):
    type = OpType.DEPOSIT

    token: str
    amount: int


@dataclass(frozen=True, slots=True)
class WithdrawEntry(LogEntry):
    type = OpType.WITHDRAW

    shares: int
    percentage: int


@dataclass(frozen=True, slots=True)
class SetAllocationEntry(LogEntry):
    type = OpType.SET_ALLOCATION

    token: str
    allocation: int  # bps


@dataclass(frozen=True, slots=True)
class WithdrawFeesEntry(LogEntry):
    type = OpType.WITHDRAW_FEES

    amount: int
    percentage: int


@dataclass(frozen=True, slots=True)
class TransferOwnershipEntry(LogEntry):
    type = OpType.TRANSFER_OWNERSHIP
    keys = {"previous_owner": "from", "new_owner": "to"}

    previous_owner: str
    new_owner: str


class OperationLog:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> list[dict]:
        """Existing entries, or an empty list if the file is missing or unreadable."""
        if not self.path.is_file():
            return []
        try:
            entries = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.error("Error reading log file %s: %s", self.path, e)
            return []
        if not isinstance(entries, list):
            log.error("Log file %s does not hold a JSON array, starting over", self.path)
            return []
        return entries

    def append(self, entry: LogEntry) -> dict:
        entries = self.read()
        record = {**stringify_ints(entry.to_record()), "timestamp": utc_timestamp()}
        entries.append(record)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        log.debug("Logged %s for fund %s", record["type"], record["fund"])
        return record
