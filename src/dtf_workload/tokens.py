"""Reference token set for allocations.

Token addresses come from deployment-info.json. Each one is probed exactly once
when the catalog is built; later code only looks at the resolved capabilities.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from decimal import Decimal
from pathlib import Path

from eth_account.signers.local import LocalAccount

from dtf_workload.models import Token

log = logging.getLogger("dtf_workload.tokens")


def read_deployment_info(path: Path) -> tuple[list[str], str | None]:
    """(token addresses, WETH address) from deployment-info.json. Missing file means none."""
    if not path.is_file():
        log.warning("No deployment info at %s, no reference tokens loaded", path)
        return [], None
    try:
        info = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.error("Error loading tokens from %s: %s", path, e)
        return [], None

    tokens = info.get("tokens") or []
    for t in tokens:
        log.info("  %s (%s): %s", t.get("name"), t.get("symbol"), t.get("address"))
    log.info("Loaded %s tokens for allocations from %s", len(tokens), path.name)
    return [t["address"] for t in tokens if t.get("address")], info.get("wethAddress")


class TokenCatalog:
    """Immutable, ordered set of probed tokens."""

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = tuple(tokens)
        self._by_address = {t.address.lower(): t for t in self._tokens}

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def get(self, address: str) -> Token | None:
        return self._by_address.get(address.lower())

    @property
    def usable(self) -> list[Token]:
        return [t for t in self._tokens if t.capabilities.usable]

    @property
    def mintable(self) -> list[Token]:
        return [t for t in self._tokens if t.capabilities.mintable]

    def snapshot(self) -> list[dict]:
        return [
            {
                "address": t.address,
                "symbol": t.symbol,
                "decimals": t.decimals,
                "erc20": str(t.capabilities.erc20),
                "mint": str(t.capabilities.mint),
            }
            for t in self._tokens
        ]

    @classmethod
    async def resolve(cls, gateway, addresses: list[str], holder: str, *, weth: str | None = None) -> "TokenCatalog":
        """Probe every address; fall back to WETH alone if none of them is a usable token."""
        log.info("Ensuring test tokens are available...")
        probed = [await gateway.probe_token(a, holder) for a in addresses]
        valid = [t for t in probed if t.capabilities.usable]
        for t in valid:
            log.info("  Token %s (%s) ok, mint %s", t.address, t.symbol, t.capabilities.mint)
        if valid:
            log.info("  Found %s valid tokens", len(valid))
            return cls(valid)

        if weth:
            log.info("  No valid tokens in deployment info, using WETH at %s as fallback", weth)
            weth_token = await gateway.probe_token(weth, holder)
            return cls([weth_token] if weth_token.capabilities.usable else [])

        log.warning("  No valid tokens found and no WETH address available")
        return cls([])


async def prepare_tokens(gateway, catalog: TokenCatalog, minter: LocalAccount,
                         wallets: list[LocalAccount], amount: Decimal) -> int:
    """Mint `amount` whole units of every mintable token to each wallet. Returns mints that succeeded."""
    log.info("Preparing tokens for allocation...")
    minted = 0
    for token in catalog.mintable:
        units = token.to_units(amount)
        for w in wallets:
            try:
                await gateway.mint(minter, token.address, w.address, units)
                minted += 1
                log.info("  Minted %s %s to %s", amount, token.symbol, w.address)
            except Exception as e:
                log.error("  Token %s mint to %s failed: %s", token.symbol, w.address, e)
    log.info("Token preparation complete (%s mints)", minted)
    return minted
