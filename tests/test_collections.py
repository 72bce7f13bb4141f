"""Tests for collection keys and identity-preserving insert/remove."""
import pytest

from formstate import FormConfig, FormStore, Updater
from formstate.collection_registry import CollectionRegistry
from formstate.value_paths import UNSET


class TestCollectionRegistry:
    """Test key list surgery in isolation."""

    @pytest.fixture
    def registry(self, key_factory):
        registry = CollectionRegistry(id_factory=key_factory)
        registry.set_keys("tags", ["a", "b", "c"])
        return registry

    def test_append_with_minus_one(self, registry):
        plan = registry.insert("tags", -1, ["v"])
        assert plan.keys == ["a", "b", "c", "k0"]
        assert plan.values == [UNSET, UNSET, UNSET, "v"]
        assert plan.index == 3

    def test_negative_index_counts_from_end(self, registry):
        plan = registry.insert("tags", -2, ["v"])
        assert plan.keys == ["a", "b", "k0", "c"]

    def test_insert_multiple_in_middle(self, registry):
        plan = registry.insert("tags", 1, ["x", "y"])
        assert plan.keys == ["a", "k0", "k1", "b", "c"]
        assert plan.values == [UNSET, "x", "y", UNSET, UNSET]

    def test_index_is_clamped(self, registry):
        assert registry.insert("tags", 99, ["v"]).keys[-1] == "k0"
        assert registry.insert("tags", -99, ["w"]).keys[0] == "k1"

    def test_insert_into_unknown_collection(self, registry):
        assert registry.insert("other", 0, ["v"]).keys == ["k0"]

    def test_remove_last(self, registry):
        assert registry.remove("tags", [-1]) == ["a", "b"]

    def test_remove_multiple(self, registry):
        assert registry.remove("tags", [0, -1]) == ["b"]

    def test_keys_are_never_reused(self, registry):
        registry.remove("tags", [0])
        keys = registry.insert("tags", 0, ["v"]).keys
        assert keys == ["k0", "b", "c"]
        assert len(set(keys)) == len(keys)

    def test_resize_reuses_positions(self, registry):
        assert registry.resize("tags", 2) == ["a", "b"]
        assert registry.resize("tags", 4) == ["a", "b", "k0", "k1"]

    def test_set_keys_updater(self, registry):
        registry.set_keys("tags", Updater(lambda keys: list(reversed(keys))))
        assert registry.get_keys("tags") == ("c", "b", "a")

    def test_get_keys_returns_copy(self, registry):
        keys = registry.get_keys("tags")
        assert isinstance(keys, tuple)
        assert registry.get_keys("missing") is None


class TestStoreCollections:
    """Test collection actions through the store."""

    @pytest.fixture
    def tags_store(self, key_factory):
        store = FormStore(id_factory=key_factory)
        store.register_field("tags-field", "tags", value=["a", "b", "c"])
        store.set_collection_keys("tags", ["ka", "kb", "kc"])
        return store

    def test_append_keys_before_values(self, tags_store):
        """Inside a batch the key list is updated and the value write still pending."""
        with tags_store.batch("append"):
            tags_store.append_collection_value("tags", "d")
            assert tags_store.get_collection_keys("tags") == ("ka", "kb", "kc", "k0")
            assert tags_store.get_field_state("tags-field").value == ["a", "b", "c"]
            assert len(tags_store.pending_effects) == 1
        assert tags_store.pending_effects == []
        assert tags_store.get_field_state("tags-field").value == ["a", "b", "c", "d"]

    def test_prepend_keeps_existing_items(self, tags_store):
        tags_store.prepend_collection_value("tags", "z")
        assert tags_store.get_collection_keys("tags") == ("k0", "ka", "kb", "kc")
        assert tags_store.get_field_state("tags-field").value == ["z", "a", "b", "c"]

    def test_insert_keeps_pristine_by_default(self, tags_store):
        tags_store.insert_collection_value("tags", 1, "x")
        state = tags_store.get_field_state("tags-field")
        assert state.value == ["a", "x", "b", "c"]
        assert state.is_pristine is True

    def test_remove_only_touches_keys(self, tags_store):
        tags_store.remove_collection_value("tags", -1)
        assert tags_store.get_collection_keys("tags") == ("ka", "kb")
        assert tags_store.get_field_state("tags-field").value == ["a", "b", "c"]

    def test_remove_multiple(self, tags_store):
        tags_store.remove_multiple_collection_values("tags", [0, 2])
        assert tags_store.get_collection_keys("tags") == ("kb",)

    def test_set_collection_values(self, tags_store):
        tags_store.set_collection_values("tags", ["x", "y", "z", "w"])
        assert tags_store.get_collection_keys("tags") == ("ka", "kb", "kc", "k0")
        state = tags_store.get_field_state("tags-field")
        assert state.value == ["x", "y", "z", "w"]
        assert state.is_pristine is False


class TestItemFields:
    """Test collections rendered as one group of fields per item."""

    @pytest.fixture
    def members_store(self, key_factory):
        store = FormStore(
            config=FormConfig(initial_values={"members": [{"name": "Ada"}, {"name": "Grace"}]}),
            id_factory=key_factory,
        )
        store.set_collection_keys("members", ["ka", "kb"])
        for index, key in enumerate(("ka", "kb")):
            store.register_field(f"{key}-name", f"members[{index}].name")
        return store

    def test_items_read_initial_values(self, members_store):
        assert members_store.get_values() == {"members": [{"name": "Ada"}, {"name": "Grace"}]}

    def test_prepend_with_renaming_view(self, members_store):
        """A listener renames item fields from the new key layout before the value write."""
        store = members_store

        def sync_item_fields():
            for index, key in enumerate(store.get_collection_keys("members")):
                field_id = f"{key}-name"
                name = f"members[{index}].name"
                current = store.get_field_state(field_id)
                if current is None:
                    store.register_field(field_id, name)
                elif current.name != name:
                    store.update_field(field_id, name=name)

        store.connect_listener(sync_item_fields)
        store.prepend_collection_value("members", {"name": "Linus"})

        assert store.get_collection_keys("members") == ("k0", "ka", "kb")
        assert store.get_field_state("k0-name").value == "Linus"
        assert store.get_field_state("ka-name").value == "Ada"
        assert store.get_field_state("kb-name").value == "Grace"
        assert store.get_values() == {
            "members": [{"name": "Linus"}, {"name": "Ada"}, {"name": "Grace"}]
        }

    def test_late_item_field_reads_parked_value(self, members_store):
        """Without a listener the new item's value waits in the external values."""
        store = members_store
        store.append_collection_value("members", {"name": "Linus"})
        store.register_field("k0-name", "members[2].name")
        assert store.get_field_state("k0-name").value == "Linus"
        assert store.get_field_state("ka-name").value == "Ada"

    def test_reset_resyncs_keys_to_initial_values(self, members_store):
        store = members_store
        store.append_collection_value("members", {"name": "Linus"})
        store.append_collection_value("members", {"name": "Alan"})
        assert len(store.get_collection_keys("members")) == 4

        store.reset()
        assert store.get_collection_keys("members") == ("ka", "kb")

    def test_reset_grows_with_fresh_keys(self, members_store):
        store = members_store
        store.remove_collection_value("members", -1)
        store.reset()
        assert store.get_collection_keys("members") == ("ka", "k0")

    def test_reset_without_initial_array_empties_keys(self, key_factory):
        store = FormStore(id_factory=key_factory)
        store.set_collection_keys("items", ["x", "y"])
        store.reset()
        assert store.get_collection_keys("items") == ()

    def test_reset_excluding_values_keeps_keys(self, members_store):
        store = members_store
        store.append_collection_value("members", {"name": "Linus"})
        store.reset(exclude=["values"])
        assert store.get_collection_keys("members") == ("ka", "kb", "k0")
