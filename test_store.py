import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from questbot.core.errors import InvalidArgument
from questbot.storage.store import DataStore


class TestDataStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "data.json"
        self.store = DataStore(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file_is_empty_document(self):
        doc = self.store.load()
        self.assertEqual(doc.users, {})
        self.assertFalse(self.path.exists())

    def test_corrupt_file_is_empty_and_backed_up(self):
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("questbot.storage.store", level="ERROR"):
            doc = self.store.load()
        self.assertEqual(doc.users, {})
        backups = list(self.path.parent.glob("data.json.corrupt-*"))
        self.assertEqual(len(backups), 1)
        self.assertEqual(backups[0].read_text(encoding="utf-8"), "{not json")

    def test_non_object_root_is_empty(self):
        self.path.write_text("[1, 2]", encoding="utf-8")
        with self.assertLogs("questbot.storage.store", level="ERROR"):
            self.assertEqual(self.store.load().users, {})

    def test_save_replaces_file_without_leftovers(self):
        doc = self.store.load()
        doc.profile(1).xp = 5
        self.store.save(doc)
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(data["users"]["1"]["xp"], 5)
        self.assertFalse(self.path.with_name("data.json.tmp").exists())

    async def test_transaction_persists(self):
        async with self.store.transaction() as doc:
            doc.profile(1).xp = 40
        self.assertEqual(self.store.load().users["1"].xp, 40)

    async def test_transaction_discards_on_error(self):
        with self.assertRaises(InvalidArgument):
            async with self.store.transaction() as doc:
                doc.profile(1).xp = 40
                raise InvalidArgument("nope")
        self.assertFalse(self.path.exists())

    async def test_snapshot_does_not_write(self):
        async with self.store.snapshot() as doc:
            doc.profile(1)
        self.assertFalse(self.path.exists())

    async def test_concurrent_transactions_do_not_lose_writes(self):
        async def bump(user_id):
            async with self.store.transaction() as doc:
                profile = doc.profile(user_id)
                await asyncio.sleep(0)
                profile.xp += 10

        await asyncio.gather(*(bump(uid) for uid in (1, 2, 1, 3, 2)))
        users = self.store.load().users
        self.assertEqual({uid: p.xp for uid, p in users.items()}, {"1": 20, "2": 20, "3": 10})


if __name__ == "__main__":
    unittest.main()
