"""Test the JSON operation log."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from unittest import TestCase

from dtf_workload.oplog import (
    CreateFundEntry,
    DepositEntry,
    OperationLog,
    SetAllocationEntry,
    TransferOwnershipEntry,
    WithdrawEntry,
    stringify_ints,
)

FUND = "0x00000000000000000000000000000000000F0001"
WALLET = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


class TestOperationLog(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "log.json"
        self.log = OperationLog(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_entries_kept_in_order(self):
        self.log.append(CreateFundEntry(wallet=WALLET, fund=FUND, name="Test Fund 1",
                                        deposit_fee=50, withdrawal_fee=60, management_fee=100, performance_fee=1000))
        self.log.append(SetAllocationEntry(wallet=WALLET, fund=FUND, token="0xabc", allocation=2500))
        self.log.append(DepositEntry(wallet=WALLET, fund=FUND, token="0xabc", amount=10**30))
        self.log.append(WithdrawEntry(wallet=WALLET, fund=FUND, shares=370, percentage=37))

        entries = self.log.read()
        self.assertEqual([e["type"] for e in entries], ["create_fund", "set_allocation", "deposit", "withdraw"])
        self.assertEqual(entries[0]["depositFee"], "50")
        self.assertEqual(entries[0]["name"], "Test Fund 1")
        self.assertEqual(entries[1]["allocation"], "2500")
        self.assertEqual(entries[2]["amount"], "1" + "0" * 30)
        self.assertEqual(entries[3]["shares"], "370")
        for e in entries:
            self.assertEqual(e["wallet"], WALLET)
            self.assertEqual(e["fund"], FUND)
            self.assertTrue(e["timestamp"].endswith("Z"))

    def test_file_is_a_pretty_printed_array(self):
        self.log.append(WithdrawEntry(wallet=WALLET, fund=FUND, shares=1, percentage=10))
        text = self.path.read_text()
        self.assertTrue(text.startswith("[\n  {"))
        self.assertIsInstance(json.loads(text), list)

    def test_ownership_transfer_keys(self):
        rec = self.log.append(TransferOwnershipEntry(wallet=WALLET, fund=FUND, previous_owner=WALLET, new_owner="0xnew"))
        self.assertEqual(rec["from"], WALLET)
        self.assertEqual(rec["to"], "0xnew")
        self.assertNotIn("previous_owner", rec)

    def test_missing_file_reads_empty(self):
        self.assertEqual(self.log.read(), [])

    def test_corrupt_file_starts_over(self):
        self.path.write_text("{not json")
        with self.assertLogs("dtf_workload.oplog", level="ERROR"):
            self.assertEqual(self.log.read(), [])
        self.log.append(WithdrawEntry(wallet=WALLET, fund=FUND, shares=1, percentage=10))
        self.assertEqual(len(self.log.read()), 1)

    def test_non_array_file_reads_empty(self):
        self.path.write_text('{"type": "deposit"}')
        with self.assertLogs("dtf_workload.oplog", level="ERROR"):
            self.assertEqual(self.log.read(), [])

    def test_existing_entries_are_preserved(self):
        self.path.write_text(json.dumps([{"type": "deposit", "fund": FUND}]))
        self.log.append(WithdrawEntry(wallet=WALLET, fund=FUND, shares=5, percentage=50))
        self.assertEqual([e["type"] for e in self.log.read()], ["deposit", "withdraw"])


class TestStringifyInts(TestCase):
    def test_nested(self):
        self.assertEqual(
            stringify_ints({"a": 1, "b": [2, {"c": 3}], "d": "x", "e": 1.5}),
            {"a": "1", "b": ["2", {"c": "3"}], "d": "x", "e": 1.5},
        )

    def test_bools_untouched(self):
        self.assertEqual(stringify_ints({"ok": True}), {"ok": True})
