import logging
from collections.abc import Iterator

from eth_account import Account
from eth_account.signers.local import LocalAccount

log = logging.getLogger("dtf_workload.wallets")


class WalletPool:
    """The primary (deployer) wallet followed by every generated wallet that got funded."""

    def __init__(self, primary: LocalAccount, others: list[LocalAccount] | None = None):
        self.primary = primary
        self._wallets: list[LocalAccount] = [primary, *(others or [])]

    def __len__(self) -> int:
        return len(self._wallets)

    def __iter__(self) -> Iterator[LocalAccount]:
        return iter(self._wallets)

    def __getitem__(self, i: int) -> LocalAccount:
        return self._wallets[i]

    @property
    def wallets(self) -> list[LocalAccount]:
        return list(self._wallets)

    def add(self, wallet: LocalAccount) -> None:
        self._wallets.append(wallet)

    def find(self, address: str) -> LocalAccount | None:
        addr = address.lower()
        return next((w for w in self._wallets if w.address.lower() == addr), None)

    def addresses(self) -> list[str]:
        return [w.address for w in self._wallets]


async def load_wallets(gateway, primary: LocalAccount, number: int, funding_wei: int) -> WalletPool:
    """Generate `number` wallets and fund each from the primary wallet.

    A wallet whose funding transfer fails is dropped; the pool may come back short.
    """
    pool = WalletPool(primary)
    log.info("Using deployer wallet: %s", primary.address)
    balance = await gateway.native_balance(primary.address)
    log.info("Deployer balance: %s wei", balance)
    if balance < funding_wei * number:
        log.warning("Deployer balance may not cover funding %s wallets", number)

    log.info("Funding %s wallets", number)
    for i in range(number):
        w = Account.create()
        try:
            await gateway.send_native(primary, w.address, funding_wei)
        except Exception as e:
            log.error("Error funding wallet %s: %s", w.address, e)
            continue
        pool.add(w)
        log.info("Created and funded wallet %s: %s", i + 1, w.address)

    log.info("Loaded %s wallets", len(pool))
    return pool
