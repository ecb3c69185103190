"""Exceptions raised by the workload.

Only SetupError is meant to escape to the top level; everything raised while
an individual operation runs is caught at the operation boundary and counted.
"""


class WorkloadError(Exception):
    pass


class SetupError(WorkloadError):
    """Missing deployment data or an unreachable node. The run cannot start."""


class TransactionReverted(WorkloadError):
    def __init__(self, tx_hash: str, what: str):
        self.tx_hash = tx_hash
        self.what = what
        super().__init__(f"{what} reverted (tx={tx_hash})")


class FundCreatedEventMissing(WorkloadError):
    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"No FundCreated event in receipt of {tx_hash}")
