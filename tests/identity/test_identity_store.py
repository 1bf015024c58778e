import tempfile
import unittest
from pathlib import Path

from identity import USERNAME_KEY, IdentityError, LocalKeyValueStore, current_username


class LocalKeyValueStoreTests(unittest.TestCase):
    def test_missing_file_has_no_username(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = LocalKeyValueStore(Path(temp_dir) / "identity.json")

            self.assertIsNone(current_username(store))
            self.assertFalse(store.remove(USERNAME_KEY))

    def test_set_persists_across_instances(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "identity.json"
            LocalKeyValueStore(path).set(USERNAME_KEY, "tomcat")

            self.assertEqual("tomcat", current_username(LocalKeyValueStore(path)))

    def test_remove_forgets_username(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = LocalKeyValueStore(Path(temp_dir) / "identity.json")
            store.set(USERNAME_KEY, "tomcat")
            store.set("theme", "dark")

            self.assertTrue(store.remove(USERNAME_KEY))
            self.assertIsNone(current_username(store))
            self.assertEqual("dark", store.get("theme"))

    def test_blank_username_counts_as_logged_out(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = LocalKeyValueStore(Path(temp_dir) / "identity.json")
            store.set(USERNAME_KEY, "   ")

            self.assertIsNone(current_username(store))

    def test_corrupt_store_raises_identity_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "identity.json"
            path.write_text("[1, 2", encoding="utf-8")
            with self.assertRaises(IdentityError):
                LocalKeyValueStore(path).get(USERNAME_KEY)

            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(IdentityError):
                LocalKeyValueStore(path).get(USERNAME_KEY)


if __name__ == "__main__":
    unittest.main()
