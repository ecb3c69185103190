"""Test token discovery, capability probing and minting."""

from __future__ import annotations

import json
import tempfile
from decimal import Decimal
from pathlib import Path
from unittest import IsolatedAsyncioTestCase, TestCase

from fakes import TOKEN_A, TOKEN_B, TOKEN_C, WETH, FakeGateway, token, wallet

from dtf_workload.tokens import TokenCatalog, prepare_tokens, read_deployment_info


class TestDeploymentInfo(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "deployment-info.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_reads_tokens_and_weth(self):
        self.path.write_text(json.dumps({
            "tokens": [
                {"name": "Token A", "symbol": "AAA", "address": TOKEN_A},
                {"name": "Token B", "symbol": "BBB", "address": TOKEN_B},
                {"name": "Broken", "symbol": "XXX"},
            ],
            "wethAddress": WETH,
        }))
        self.assertEqual(read_deployment_info(self.path), ([TOKEN_A, TOKEN_B], WETH))

    def test_missing_file(self):
        self.assertEqual(read_deployment_info(self.path), ([], None))

    def test_corrupt_file(self):
        self.path.write_text("nope")
        with self.assertLogs("dtf_workload.tokens", level="ERROR"):
            self.assertEqual(read_deployment_info(self.path), ([], None))


class TestResolve(IsolatedAsyncioTestCase):
    async def test_keeps_only_usable_tokens(self):
        gw = FakeGateway([token(TOKEN_A, "AAA"), token(TOKEN_B, "BBB", mint=False)])
        catalog = await TokenCatalog.resolve(gw, [TOKEN_A, TOKEN_B, TOKEN_C], wallet(1).address, weth=WETH)
        self.assertEqual([t.symbol for t in catalog], ["AAA", "BBB"])
        self.assertEqual([t.symbol for t in catalog.mintable], ["AAA"])
        self.assertEqual(len(gw.called("probe_token")), 3)

    async def test_falls_back_to_weth(self):
        gw = FakeGateway([token(WETH, "WETH", mint=False)])
        catalog = await TokenCatalog.resolve(gw, [TOKEN_C], wallet(1).address, weth=WETH)
        self.assertEqual([t.address for t in catalog], [WETH])
        self.assertEqual(catalog.mintable, [])

    async def test_nothing_usable(self):
        catalog = await TokenCatalog.resolve(FakeGateway(), [TOKEN_C], wallet(1).address)
        self.assertEqual(len(catalog), 0)
        self.assertEqual(catalog.usable, [])

    async def test_lookup_ignores_case(self):
        catalog = TokenCatalog([token("0xAbCdEf0000000000000000000000000000000000", "MIX")])
        self.assertEqual(catalog.get("0xabcdef0000000000000000000000000000000000").symbol, "MIX")


class TestPrepareTokens(IsolatedAsyncioTestCase):
    async def test_mints_each_mintable_token_to_every_wallet(self):
        gw = FakeGateway()
        catalog = TokenCatalog([token(TOKEN_A, "AAA"), token(TOKEN_B, "BBB", mint=False)])
        wallets = [wallet(1), wallet(2)]
        minted = await prepare_tokens(gw, catalog, wallets[0], wallets, Decimal("1000"))

        self.assertEqual(minted, 2)
        self.assertEqual({c[1] for c in gw.called("mint")}, {TOKEN_A})
        self.assertEqual(gw.balances[(TOKEN_A.lower(), wallets[1].address.lower())], 1000 * 10**18)

    async def test_mint_failure_is_not_fatal(self):
        gw = FakeGateway()
        gw.fail["mint"] = RuntimeError("Ownable: caller is not the owner")
        catalog = TokenCatalog([token(TOKEN_A, "AAA")])
        with self.assertLogs("dtf_workload.tokens", level="ERROR"):
            minted = await prepare_tokens(gw, catalog, wallet(1), [wallet(1), wallet(2)], Decimal("1"))
        self.assertEqual(minted, 0)
        self.assertEqual(len(gw.called("mint")), 2)
