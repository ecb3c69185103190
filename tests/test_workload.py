"""Test start-up wiring of a workload against the in-memory gateway."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from random import Random
from unittest import IsolatedAsyncioTestCase, TestCase

from fakes import TOKEN_A, TOKEN_B, FakeGateway, make_config, token

from dtf_workload.errors import SetupError
from dtf_workload.workload import Workload, read_factory_address

FACTORY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class TestFactoryAddress(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "factory-deployment-full.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_reads_address(self):
        self.path.write_text(json.dumps({"factoryAddress": FACTORY, "network": "localhost"}))
        self.assertEqual(read_factory_address(self.path), FACTORY)

    def test_missing_file(self):
        with self.assertRaises(SetupError):
            read_factory_address(self.path)

    def test_bad_json(self):
        self.path.write_text("{")
        with self.assertRaises(SetupError):
            read_factory_address(self.path)

    def test_missing_key(self):
        self.path.write_text(json.dumps({"network": "localhost"}))
        with self.assertRaises(SetupError):
            read_factory_address(self.path)


class TestWorkloadInit(IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = make_config(self._tmp.name, num_operations=3, num_wallets=2)
        self.config.deployment_info_path.write_text(json.dumps({
            "tokens": [{"name": "A", "symbol": "AAA", "address": TOKEN_A},
                       {"name": "B", "symbol": "BBB", "address": TOKEN_B}],
        }))
        self.gw = FakeGateway([token(TOKEN_A, "AAA"), token(TOKEN_B, "BBB", mint=False)])
        self.wl = Workload(self.config, self.gw, rng=Random(99))

    def tearDown(self):
        self._tmp.cleanup()

    async def test_init_builds_pool_and_catalog(self):
        await self.wl.init()
        self.assertEqual(len(self.wl.pool), 3)
        self.assertEqual(self.wl.pool.primary.address, self.wl.primary.address)
        self.assertEqual(len(self.wl.catalog), 2)
        # One mintable token, one mint per wallet
        self.assertEqual(len(self.gw.called("mint")), 3)
        self.assertIsNotNone(self.wl.scheduler)

    async def test_unreachable_node(self):
        self.gw.connected = False
        with self.assertRaises(SetupError):
            await self.wl.init()

    async def test_factory_not_answering(self):
        self.gw.fail["fund_count"] = RuntimeError("could not decode output")
        with self.assertRaises(SetupError):
            await self.wl.init()

    async def test_run_and_snapshot(self):
        await self.wl.run()
        stats = self.wl.snapshot_stats()
        self.assertEqual(stats["funds"], self.config.num_funds)
        self.assertEqual(stats["wallets"], 3)
        self.assertEqual(stats["iterations"], 3)
        self.assertEqual(stats["operations"]["create_fund"]["SUCCEEDED"], self.config.num_funds)
        self.assertEqual(self.wl.snapshot_wallets(), self.wl.pool.addresses())
        self.assertEqual(self.wl.oplog.read()[0]["type"], "create_fund")
