import json
import os
import tempfile
import unittest

from utils.favorites import JsonFavoriteStore, MemoryFavoriteStore, toggle_favorite


class MemoryFavoriteStoreTestCase(unittest.TestCase):
    def test_toggle(self):
        store = MemoryFavoriteStore()
        self.assertFalse(store.get_favorite(1))
        self.assertTrue(toggle_favorite(store, 1))
        self.assertTrue(store.get_favorite(1))
        self.assertFalse(toggle_favorite(store, 1))
        self.assertEqual(store.favorite_ids(), set())

        store.set_favorite(2, False)  # unsetting an unknown id is fine
        self.assertEqual(store.favorite_ids(), set())


class JsonFavoriteStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "device", "favorites.json")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_persists_between_instances(self):
        store = JsonFavoriteStore(self.path)
        self.assertEqual(store.favorite_ids(), set())
        toggle_favorite(store, 7)
        toggle_favorite(store, 2)

        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(json.load(f), {"fav_2": "1", "fav_7": "1"})

        reopened = JsonFavoriteStore(self.path)
        self.assertTrue(reopened.get_favorite(7))
        self.assertTrue(reopened.get_favorite(2))
        self.assertFalse(reopened.get_favorite(1))

        toggle_favorite(reopened, 7)
        self.assertEqual(JsonFavoriteStore(self.path).favorite_ids(), {2})

    def test_ignores_foreign_keys_and_bad_files(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"fav_3": "1", "fav_4": "0", "theme": "dark", "fav_x": "1"}, f)
        self.assertEqual(JsonFavoriteStore(self.path).favorite_ids(), {3})

        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertEqual(JsonFavoriteStore(self.path).favorite_ids(), set())
