"""Unit tests for the profile store.

Invariants under test:
- (name, email) is unique
- At most MAX_PROFILES entries, most recently used first
- Malformed or missing state loads as an empty list
- Saving never raises
"""

import stat

import pytest

from gitid.profile_store import (
    MAX_PROFILES,
    STORAGE_KEY,
    MemoryState,
    Profile,
    ProfileStore,
    StateError,
    TomlStateFile,
)


class TestProfile:
    """Test Profile dataclass."""

    def test_to_dict_omits_missing_registry(self):
        assert Profile("Alice", "alice@x.com").to_dict() == {
            "name": "Alice",
            "email": "alice@x.com",
        }

    def test_to_dict_includes_registry(self):
        profile = Profile("Bob", "bob@x.com", "taobao")
        assert profile.to_dict()["registry"] == "taobao"

    def test_from_dict_requires_name_and_email(self):
        with pytest.raises(ValueError):
            Profile.from_dict({"name": "Alice"})
        with pytest.raises(ValueError):
            Profile.from_dict({"name": 1, "email": "a@x"})
        with pytest.raises(ValueError):
            Profile.from_dict("Alice <alice@x.com>")

    def test_from_dict_drops_empty_registry(self):
        profile = Profile.from_dict({"name": "A", "email": "a@x", "registry": ""})
        assert profile.registry is None


class TestLoad:
    """Test restoring the list from persisted state."""

    def test_missing_state_is_empty(self):
        assert ProfileStore.init(MemoryState()).profiles == []

    def test_no_backend_is_empty(self):
        assert ProfileStore.init(None).profiles == []

    def test_well_formed_state_loads_in_order(self):
        state = MemoryState(
            {
                STORAGE_KEY: [
                    {"name": "Bob", "email": "bob@x.com", "registry": "taobao"},
                    {"name": "Alice", "email": "alice@x.com"},
                ]
            }
        )

        store = ProfileStore.init(state)

        assert store.profiles == [
            Profile("Bob", "bob@x.com", "taobao"),
            Profile("Alice", "alice@x.com"),
        ]

    @pytest.mark.parametrize(
        "stored",
        [
            [],
            "not a list",
            {"name": "Alice", "email": "alice@x.com"},
            [{"name": "Alice"}],
            [{"name": "Alice", "email": "alice@x.com"}, 42],
        ],
    )
    def test_malformed_state_is_empty(self, stored):
        store = ProfileStore.init(MemoryState({STORAGE_KEY: stored}))
        assert store.profiles == []

    def test_oversized_state_is_truncated(self):
        records = [{"name": f"u{i}", "email": f"u{i}@x"} for i in range(MAX_PROFILES + 3)]
        store = ProfileStore.init(MemoryState({STORAGE_KEY: records}))

        assert len(store.profiles) == MAX_PROFILES
        assert store.profiles[0].name == "u0"

    def test_repeated_pairs_keep_first_entry(self):
        state = MemoryState(
            {
                STORAGE_KEY: [
                    {"name": "A", "email": "a@x"},
                    {"name": "B", "email": "b@x"},
                    {"name": "A", "email": "a@x", "registry": "taobao"},
                ]
            }
        )

        store = ProfileStore.init(state)

        assert store.profiles == [Profile("A", "a@x"), Profile("B", "b@x")]
        store.remove("A", "a@x")
        assert store.profiles == [Profile("B", "b@x")]

    def test_duplicates_do_not_count_towards_cap(self):
        records = [{"name": "dup", "email": "dup@x"}] * 3
        records += [{"name": f"u{i}", "email": f"u{i}@x"} for i in range(MAX_PROFILES)]

        store = ProfileStore.init(MemoryState({STORAGE_KEY: records}))

        assert len(store.profiles) == MAX_PROFILES
        assert len({p.key for p in store.profiles}) == MAX_PROFILES
        assert store.profiles[1].name == "u0"

    def test_unreadable_backend_is_empty(self):
        class BrokenState:
            def get(self, key):
                raise StateError("disk on fire")

            def update(self, key, value):
                raise StateError("disk on fire")

        assert ProfileStore.init(BrokenState()).profiles == []


class TestUpsert:
    """Test capacity-bounded, deduplicated insertion."""

    def test_insert_prepends_and_persists(self, store, memory_state):
        store.upsert("Alice", "alice@x.com")
        profiles, inserted = store.upsert("Bob", "bob@x.com", "https://registry.npmmirror.com/")

        assert inserted is True
        assert [p.name for p in profiles] == ["Bob", "Alice"]
        assert memory_state.get(STORAGE_KEY) == [
            {"name": "Bob", "email": "bob@x.com", "registry": "https://registry.npmmirror.com/"},
            {"name": "Alice", "email": "alice@x.com"},
        ]

    def test_duplicate_keeps_original_registry(self, store):
        store.upsert("A", "a@x", "alias1")
        profiles, inserted = store.upsert("A", "a@x", "alias2")

        assert inserted is False
        assert profiles == [Profile("A", "a@x", "alias1")]

    def test_duplicate_does_not_reorder(self, store):
        store.upsert("A", "a@x")
        store.upsert("B", "b@x")

        profiles, inserted = store.upsert("A", "a@x")

        assert inserted is False
        assert [p.name for p in profiles] == ["B", "A"]

    def test_same_name_different_email_is_new_profile(self, store):
        store.upsert("A", "a@x")
        _, inserted = store.upsert("A", "a@work")

        assert inserted is True
        assert len(store.profiles) == 2

    def test_eleventh_profile_evicts_oldest(self, store):
        for i in range(MAX_PROFILES):
            store.upsert(f"u{i}", f"u{i}@x")

        profiles, inserted = store.upsert("new", "new@x")

        assert inserted is True
        assert len(profiles) == MAX_PROFILES
        assert profiles[0] == Profile("new", "new@x")
        assert not store.exists("u0", "u0@x")
        assert store.exists("u1", "u1@x")

    def test_random_sequences_keep_invariants(self, store):
        pairs = [(f"n{i % 7}", f"e{i % 5}") for i in range(60)]
        for name, email in pairs:
            store.upsert(name, email)
            keys = [p.key for p in store.profiles]
            assert len(keys) <= MAX_PROFILES
            assert len(keys) == len(set(keys))

    def test_empty_registry_stored_as_none(self, store):
        profiles, _ = store.upsert("A", "a@x", "")
        assert profiles[0].registry is None


class TestRemoveAndExists:
    """Test remove() and exists()."""

    def test_remove_after_upsert(self, store, memory_state):
        store.upsert("A", "a@x", "r")
        store.upsert("B", "b@x")

        profiles = store.remove("A", "a@x")

        assert not any(p.matches("A", "a@x") for p in profiles)
        assert memory_state.get(STORAGE_KEY) == [{"name": "B", "email": "b@x"}]

    def test_remove_absent_is_noop(self, store):
        store.upsert("A", "a@x")
        assert store.remove("Z", "z@x") == [Profile("A", "a@x")]

    def test_exists_ignores_registry(self, store):
        store.upsert("A", "a@x", "taobao")
        assert store.exists("A", "a@x")
        assert not store.exists("A", "b@x")
        assert store.find("A", "a@x").registry == "taobao"


class TestSave:
    """Test best-effort persistence."""

    def test_save_swallows_backend_errors(self):
        class ReadOnlyState(MemoryState):
            def update(self, key, value):
                raise StateError("read-only")

        store = ProfileStore.init(ReadOnlyState())
        profiles, inserted = store.upsert("A", "a@x")

        assert inserted is True
        assert profiles == [Profile("A", "a@x")]

    def test_save_load_round_trip(self, memory_state):
        store = ProfileStore.init(memory_state)
        store.upsert("A", "a@x", "taobao")
        store.upsert("B", "b@x")
        before = store.load()

        store.save(before)

        assert ProfileStore.init(memory_state).profiles == before


class TestTomlStateFile:
    """Test the TOML state backend."""

    def test_survives_new_store(self, state_file):
        store = ProfileStore.init(TomlStateFile(state_file))
        store.upsert("Alice", "alice@x.com")
        store.upsert("Bob", "bob@x.com", "https://registry.npmmirror.com/")

        reloaded = ProfileStore.init(TomlStateFile(state_file))

        assert reloaded.profiles == [
            Profile("Bob", "bob@x.com", "https://registry.npmmirror.com/"),
            Profile("Alice", "alice@x.com"),
        ]

    def test_file_is_owner_only(self, state_file):
        ProfileStore.init(TomlStateFile(state_file)).upsert("A", "a@x")

        mode = stat.S_IMODE(state_file.stat().st_mode)
        assert mode == 0o600
        assert not state_file.with_suffix(".tmp").exists()

    def test_keeps_other_keys(self, state_file):
        backend = TomlStateFile(state_file)
        backend.update("other", {"kept": True})

        ProfileStore.init(backend).upsert("A", "a@x")

        assert backend.get("other") == {"kept": True}

    def test_corrupt_file_loads_empty_and_is_rewritten(self, state_file):
        state_file.parent.mkdir(parents=True, exist_ok=True)
        state_file.write_text("this is [not toml")

        store = ProfileStore.init(TomlStateFile(state_file))
        assert store.profiles == []

        store.upsert("A", "a@x")
        assert ProfileStore.init(TomlStateFile(state_file)).profiles == [Profile("A", "a@x")]
