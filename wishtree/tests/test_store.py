import json
import tempfile
import unittest

from wishtree.replicas import (
    LOCAL_STORAGE_KEY,
    FileLocalReplica,
    InMemoryLocalReplica,
    InMemoryRemoteReplica,
)
from wishtree.scheduler import ManualScheduler
from wishtree.store import WishStore

DEBOUNCE = 0.5


class BrokenRemote:
    def fetch_wishes(self):
        raise ConnectionError("offline")

    def save_wishes(self, records):
        raise ConnectionError("offline")


class WishStoreTests(unittest.TestCase):
    def setUp(self):
        self.remote = InMemoryRemoteReplica()
        self.local = InMemoryLocalReplica()
        self.scheduler = ManualScheduler()
        self.store = WishStore(
            self.remote, self.local, scheduler=self.scheduler, debounce_seconds=DEBOUNCE
        )

    def local_snapshot(self):
        return json.loads(self.local.blobs[LOCAL_STORAGE_KEY])

    def test_add_assigns_identity(self):
        wish = self.store.add(
            {"message": "Peace", "author": "Ana", "x": 50, "y": 50, "color": "#fff"}
        )
        self.assertEqual(len(self.store.wishes), 1)
        self.assertTrue(wish.id)
        self.assertGreater(wish.created_at, 0)
        self.assertEqual(
            (wish.message, wish.author, wish.x, wish.y, wish.color),
            ("Peace", "Ana", 50, 50, "#fff"),
        )

    def test_add_ignores_supplied_identity(self):
        wish = self.store.add({"id": "mine", "createdAt": 1, "message": "hi"})
        self.assertNotEqual(wish.id, "mine")
        self.assertNotEqual(wish.created_at, 1)

    def test_every_mutation_writes_local_snapshot(self):
        first = self.store.add({"message": "one"})
        self.assertEqual([w["id"] for w in self.local_snapshot()], [first.id])
        second = self.store.add({"message": "two"})
        self.store.delete(first.id)
        self.assertEqual([w["id"] for w in self.local_snapshot()], [second.id])

    def test_burst_of_mutations_sends_one_remote_write(self):
        wish = self.store.add({"message": "one"})
        self.store.edit({**wish.to_dict(), "message": "two"})
        self.store.add({"message": "three"})
        self.scheduler.advance(DEBOUNCE / 2)
        self.store.edit({**wish.to_dict(), "message": "final"})
        self.assertEqual(self.remote.saves, [])

        self.scheduler.advance(DEBOUNCE)
        self.assertEqual(len(self.remote.saves), 1)
        saved = self.remote.saves[0]
        self.assertEqual([w["message"] for w in saved], ["final", "three"])
        self.assertEqual(saved, [w.to_dict() for w in self.store.wishes])

    def test_edit_replaces_in_place_and_keeps_identity(self):
        first = self.store.add({"message": "one", "password": "hash"})
        second = self.store.add({"message": "two"})
        edited = self.store.edit(
            {"id": first.id, "createdAt": 5, "message": "changed", "x": 500}
        )
        self.assertEqual(edited.created_at, first.created_at)
        self.assertEqual(edited.password, "hash")
        self.assertEqual(edited.x, 100)
        self.assertEqual([w.id for w in self.store.wishes], [first.id, second.id])
        self.assertEqual(self.store.wishes[0].message, "changed")

    def test_edit_replaces_password_when_supplied(self):
        wish = self.store.add({"message": "one", "password": "old"})
        edited = self.store.edit({"id": wish.id, "message": "one", "password": "new"})
        self.assertEqual(edited.password, "new")

    def test_edit_unknown_id_is_noop(self):
        self.store.add({"message": "one"})
        before = self.store.wishes
        self.scheduler.advance(DEBOUNCE)
        self.assertIsNone(self.store.edit({"id": "missing", "message": "x"}))
        self.assertEqual(self.store.wishes, before)
        self.assertFalse(self.store.remote_write_pending)

    def test_delete(self):
        wish = self.store.add({"message": "one"})
        self.assertFalse(self.store.delete("missing"))
        self.assertTrue(self.store.delete(wish.id))
        self.assertEqual(self.store.wishes, [])

    def test_load_prefers_remote(self):
        self.remote.records = [{"id": "r1", "message": "remote", "x": 300}]
        self.local.blobs[LOCAL_STORAGE_KEY] = json.dumps([{"id": "l1"}])
        wishes = self.store.load()
        self.assertEqual([w.id for w in wishes], ["r1"])
        self.assertEqual(wishes[0].x, 100)

    def test_load_falls_back_to_local_when_remote_empty(self):
        self.local.blobs[LOCAL_STORAGE_KEY] = json.dumps(
            [{"id": "l1", "message": "local"}, "garbage"]
        )
        wishes = self.store.load()
        self.assertEqual(wishes[0].id, "l1")
        self.assertEqual(len(wishes), 2)

    def test_load_falls_back_when_remote_raises(self):
        store = WishStore(BrokenRemote(), self.local, scheduler=self.scheduler)
        self.local.blobs[LOCAL_STORAGE_KEY] = json.dumps([{"id": "l1"}])
        with self.assertLogs("wishtree.store", level="ERROR"):
            wishes = store.load()
        self.assertEqual([w.id for w in wishes], ["l1"])

    def test_unparsable_local_replica_loads_empty(self):
        self.local.blobs[LOCAL_STORAGE_KEY] = "not json"
        with self.assertLogs("wishtree.store", level="ERROR"):
            self.assertEqual(self.store.load(), [])

    def test_out_of_range_local_record_is_sanitized(self):
        self.local.blobs[LOCAL_STORAGE_KEY] = json.dumps(
            [{"id": "a", "x": 10**400, "createdAt": 10**400}]
        )
        wishes = self.store.load()
        self.assertEqual([w.id for w in wishes], ["a"])
        self.assertEqual(wishes[0].x, 100.0)
        self.assertLess(wishes[0].created_at, 10**400)

    def test_non_array_local_replica_loads_empty(self):
        self.local.blobs[LOCAL_STORAGE_KEY] = json.dumps({"wishes": []})
        self.assertEqual(self.store.load(), [])

    def test_nothing_anywhere_loads_empty(self):
        self.assertEqual(self.store.load(), [])

    def test_remote_outage_keeps_memory_and_local(self):
        self.remote.available = False
        wish = self.store.add({"message": "offline"})
        with self.assertLogs("wishtree.store", level="WARNING"):
            self.scheduler.advance(DEBOUNCE)
        self.assertEqual(self.store.wishes, [wish])
        self.assertEqual(self.local_snapshot()[0]["id"], wish.id)

    def test_remote_exceptions_do_not_escape(self):
        store = WishStore(BrokenRemote(), self.local, scheduler=self.scheduler)
        store.add({"message": "x"})
        with self.assertLogs("wishtree.store", level="ERROR"):
            self.scheduler.advance(DEBOUNCE)

    def test_local_write_failure_is_logged(self):
        self.local.fail_writes = True
        with self.assertLogs("wishtree.store", level="ERROR"):
            wish = self.store.add({"message": "x"})
        self.assertEqual(self.store.wishes, [wish])
        self.scheduler.advance(DEBOUNCE)
        self.assertEqual(len(self.remote.saves), 1)

    def test_flush_sends_pending_write(self):
        self.store.add({"message": "x"})
        self.assertTrue(self.store.flush())
        self.assertEqual(len(self.remote.saves), 1)
        self.scheduler.advance(DEBOUNCE)
        self.assertEqual(len(self.remote.saves), 1)


class FileLocalReplicaTests(unittest.TestCase):
    def test_roundtrip_through_store(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            local = FileLocalReplica(tmp_dir)
            self.assertIsNone(local.read(LOCAL_STORAGE_KEY))

            store = WishStore(
                InMemoryRemoteReplica(available=False), local, scheduler=ManualScheduler()
            )
            wish = store.add({"message": "kept", "author": "Ana"})

            reloaded = WishStore(
                InMemoryRemoteReplica(available=False), local, scheduler=ManualScheduler()
            )
            self.assertEqual(reloaded.load(), [wish])


if __name__ == "__main__":
    unittest.main()
