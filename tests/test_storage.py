"""Tests for the namespaced key-value store."""

import uuid

import pytest
from sqlmodel import Session

from study_dashboard.auth_utils import load_session_secret
from study_dashboard.models import StorageEntry
from study_dashboard.storage import SESSION_SECRET_KEY, KeyValueStore


class TestKeyValueStore:
    def test_get_missing_key_returns_none(self, store):
        assert store.get("usersDB") is None

    def test_set_then_get(self, store):
        store.set("modulesDB", "[]")
        assert store.get("modulesDB") == "[]"

    def test_set_overwrites(self, store):
        store.set("currentUser", '{"email": "a@x"}')
        store.set("currentUser", '{"email": "b@x"}')
        assert store.get("currentUser") == '{"email": "b@x"}'

    def test_remove(self, store):
        store.set("currentUser", "{}")
        store.remove("currentUser")
        assert store.get("currentUser") is None

    def test_remove_missing_key_is_noop(self, store):
        store.remove("never-set")
        assert store.get("never-set") is None

    def test_namespaces_are_isolated(self, engine):
        first = KeyValueStore(engine, "client-one")
        second = KeyValueStore(engine, "client-two")
        first.set("usersDB", "[1]")
        assert second.get("usersDB") is None
        first.remove("usersDB")


class TestTransactions:
    def test_writes_commit_together(self, store):
        with store.transaction():
            store.set("usersDB", "[]")
            store.set("currentUser", "{}")
        assert store.get("usersDB") == "[]"
        assert store.get("currentUser") == "{}"

    def test_reads_inside_transaction_see_pending_writes(self, store):
        with store.transaction():
            store.set("usersDB", "[42]")
            assert store.get("usersDB") == "[42]"

    def test_error_rolls_back_every_write(self, store):
        store.set("usersDB", "old")
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.set("usersDB", "new")
                store.set("currentUser", "{}")
                raise RuntimeError("boom")
        assert store.get("usersDB") == "old"
        assert store.get("currentUser") is None

    def test_nested_transaction_commits_with_outer(self, store):
        with store.transaction():
            with store.transaction():
                store.set("modulesDB", "[]")
            store.set("announcementsDB", "[]")
        assert store.get("modulesDB") == "[]"
        assert store.get("announcementsDB") == "[]"


class TestUpdateTime:
    def test_new_entries_are_stamped_in_utc(self):
        entry = StorageEntry(namespace="n", key="k", value="v")
        assert entry.updated_at.tzinfo is not None

    def test_overwrite_is_persisted(self, store, engine):
        store.set("usersDB", "[]")
        store.set("usersDB", "[1]")
        with Session(engine) as session:
            entry = session.get(StorageEntry, (store.namespace, "usersDB"))
            assert entry.value == "[1]"
            assert entry.updated_at is not None


class TestSessionSecret:
    def test_generated_once_and_reused(self, engine):
        namespace = f"app-{uuid.uuid4().hex}"
        first = load_session_secret(KeyValueStore(engine, namespace))
        # A restarted process builds a fresh store over the same table
        second = load_session_secret(KeyValueStore(engine, namespace))
        assert first == second
        assert len(first) >= 32

    def test_existing_secret_is_kept(self, store):
        store.set(SESSION_SECRET_KEY, "configured-before")
        assert load_session_secret(store) == "configured-before"
