import pytest

from storefront.exceptions import PersistenceError
from storefront.persistence.local_cache import LocalCache


class TestInMemory:
    def test_get_returns_default_for_missing_key(self):
        assert LocalCache().get("cart:items", []) == []

    def test_values_are_copies(self):
        cache = LocalCache()
        value = [{"id": "a"}]
        cache.set("cart:items", value)

        value.append({"id": "b"})
        fetched = cache.get("cart:items")
        fetched.append({"id": "c"})

        assert cache.get("cart:items") == [{"id": "a"}]

    def test_non_json_value_rejected(self):
        with pytest.raises(PersistenceError):
            LocalCache().set("cart:items", {"bad": object()})

    def test_remove(self):
        cache = LocalCache()
        cache.set("cart:id", "c1")
        cache.remove("cart:id")
        cache.remove("cart:missing")

        assert cache.get("cart:id") is None


class TestOnDisk:
    def test_values_survive_a_new_instance(self, tmp_path):
        LocalCache(tmp_path).set("cart:items", [{"id": "a", "amount": 2}])

        restored = LocalCache(tmp_path)

        assert restored.get("cart:items") == [{"id": "a", "amount": 2}]
        assert [p.name for p in tmp_path.glob("*.json")] == ["cart__items.json"]

    def test_remove_deletes_file(self, tmp_path):
        cache = LocalCache(tmp_path)
        cache.set("cart:id", "c1")
        cache.remove("cart:id")

        assert LocalCache(tmp_path).get("cart:id") is None
        assert list(tmp_path.glob("*.json")) == []
