import logging
from collections.abc import Iterator
from random import Random

from dtf_workload.models import Fund

log = logging.getLogger("dtf_workload.registry")


class FundRegistry:
    """Funds created during this run, in creation order. Nothing is ever removed."""

    def __init__(self) -> None:
        self._funds: list[Fund] = []
        self._by_address: dict[str, Fund] = {}

    def __len__(self) -> int:
        return len(self._funds)

    def __iter__(self) -> Iterator[Fund]:
        return iter(list(self._funds))

    def __contains__(self, address: str) -> bool:
        return address.lower() in self._by_address

    def add(self, fund: Fund) -> Fund:
        key = fund.address.lower()
        if key in self._by_address:
            raise ValueError(f"Fund {fund.address} already registered")
        self._funds.append(fund)
        self._by_address[key] = fund
        log.debug("Registered fund %s (%s), %s total", fund.address, fund.name, len(self._funds))
        return fund

    def get(self, address: str) -> Fund | None:
        return self._by_address.get(address.lower())

    def choice(self, rng: Random) -> Fund:
        if not self._funds:
            raise LookupError("No funds registered")
        return rng.choice(self._funds)

    def record_fee_withdrawal(self, address: str) -> None:
        if fund := self.get(address):
            fund.deposit_fee_balance = 0
            fund.withdrawal_fee_balance = 0

    def record_owner(self, address: str, new_owner: str) -> None:
        if fund := self.get(address):
            fund.owner = new_owner

    def snapshot(self) -> list[dict]:
        return [f.to_dict() for f in self._funds]
