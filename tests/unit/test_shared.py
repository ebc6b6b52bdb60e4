"""Unit tests for shared objects and the shared state store."""

from __future__ import annotations

import pytest

from syncs_client.errors import ReadOnlyError
from syncs_client.protocol.commands import Scope, SyncCommand
from syncs_client.shared import ChangeEvent, SharedStateStore


def make_store() -> tuple[SharedStateStore, list]:
    sent: list = []

    def send_command(command) -> bool:
        sent.append(command.to_wire())
        return True

    return SharedStateStore(send_command), sent


class TestAccessors:
    """Lazy creation per scope."""

    def test_shared_created_once(self) -> None:
        store, _ = make_store()

        obj = store.shared("profile")

        assert obj.scope == Scope.CLIENT
        assert obj.read_only is False
        assert store.shared("profile") is obj

    def test_group_shared_per_group(self) -> None:
        """Same name in different groups gives different objects."""
        store, _ = make_store()

        a = store.group_shared("room1", "board")
        b = store.group_shared("room2", "board")

        assert a is not b
        assert a.group == "room1"
        assert a.read_only is True
        assert store.group_shared("room1", "board") is a

    def test_global_shared(self) -> None:
        store, _ = make_store()

        obj = store.global_shared("settings")

        assert obj.scope == Scope.GLOBAL
        assert obj.read_only is True

    def test_namespaces_independent(self) -> None:
        """A name in one scope does not alias another scope."""
        store, _ = make_store()

        assert store.shared("x") is not store.global_shared("x")

    def test_unset_key_is_none(self) -> None:
        """Reading an unset key returns None and never raises."""
        store, _ = make_store()
        obj = store.global_shared("settings")

        assert obj.get("missing") is None
        assert obj["missing"] is None
        assert obj.get("missing", 3) == 3


class TestClientWrites:
    """Writes to CLIENT objects."""

    def test_write_updates_notifies_and_syncs(self) -> None:
        """A write stores the value, fires the handler once and emits one sync."""
        store, sent = make_store()
        obj = store.shared("profile")
        events: list[ChangeEvent] = []
        obj.on_change(events.append)

        obj.set("name", "ada")

        assert obj.get("name") == "ada"
        assert events == [ChangeEvent(values={"name": "ada"}, origin="client")]
        assert sent == [
            {
                "command": True,
                "type": "sync",
                "scope": "CLIENT",
                "name": "profile",
                "key": "name",
                "value": "ada",
            }
        ]

    def test_item_assignment(self) -> None:
        """obj[key] = value is the same as set()."""
        store, sent = make_store()
        obj = store.shared("profile")

        obj["age"] = 36

        assert obj["age"] == 36
        assert "age" in obj
        assert len(sent) == 1

    def test_write_without_handler(self) -> None:
        """Sync is sent even with no handler registered."""
        store, sent = make_store()

        store.shared("p").set("k", 1)

        assert len(sent) == 1

    def test_each_write_syncs(self) -> None:
        store, sent = make_store()
        obj = store.shared("p")

        obj.set("a", 1)
        obj.set("a", 2)

        assert [m["value"] for m in sent] == [1, 2]
        assert obj.to_dict() == {"a": 2}


class TestReadOnlyWrites:
    """Writes to GLOBAL and GROUP objects are rejected."""

    @pytest.mark.parametrize("scope", ["global", "group"])
    def test_write_rejected(self, scope: str) -> None:
        store, sent = make_store()
        obj = store.global_shared("s") if scope == "global" else store.group_shared("g", "s")
        events: list = []
        obj.on_change(events.append)

        with pytest.raises(ReadOnlyError):
            obj.set("k", 1)

        assert obj.get("k") is None
        assert len(obj) == 0
        assert events == []
        assert sent == []

    def test_read_only_error_is_permission_error(self) -> None:
        store, _ = make_store()

        with pytest.raises(PermissionError):
            store.global_shared("s")["k"] = 1


class TestChangeHandler:
    """Handler registration."""

    def test_replaces_previous(self) -> None:
        """Only the latest handler is called."""
        store, _ = make_store()
        obj = store.shared("p")
        first: list = []
        second: list = []

        obj.on_change(first.append)
        obj.on_change(second.append)
        obj.set("k", 1)

        assert first == []
        assert len(second) == 1

    def test_chaining(self) -> None:
        store, _ = make_store()
        obj = store.shared("p")

        assert obj.on_change(lambda event: None) is obj

    def test_failing_handler_contained(self) -> None:
        """A failing handler does not block the sync."""
        store, sent = make_store()
        obj = store.shared("p")

        def broken(event):
            raise RuntimeError("boom")

        obj.on_change(broken)
        obj.set("k", 1)

        assert obj.get("k") == 1
        assert len(sent) == 1


class TestApplySync:
    """Inbound reconciliation."""

    def test_global_on_fresh_store(self) -> None:
        """Inbound GLOBAL sync merges all keys and fires the handler once."""
        store, sent = make_store()
        obj = store.global_shared("n")
        events: list[ChangeEvent] = []
        obj.on_change(events.append)

        store.apply_sync(
            SyncCommand(scope=Scope.GLOBAL, name="n", values={"a": 1, "b": 2})
        )

        assert obj.get("a") == 1
        assert obj.get("b") == 2
        assert events == [ChangeEvent(values={"a": 1, "b": 2}, origin="server")]
        assert sent == []

    def test_global_creates_object(self) -> None:
        """Inbound sync for an unknown object creates it with the values."""
        store, _ = make_store()

        store.apply_sync(SyncCommand(scope=Scope.GLOBAL, name="fresh", values={"a": 1}))

        assert store.global_shared("fresh").to_dict() == {"a": 1}

    def test_group_resolves_group(self) -> None:
        store, _ = make_store()

        store.apply_sync(
            SyncCommand(scope=Scope.GROUP, group="room1", name="board", values={"x": 1})
        )

        assert store.group_shared("room1", "board").get("x") == 1
        assert store.group_shared("room2", "board").get("x") is None

    def test_group_without_group_ignored(self) -> None:
        store, _ = make_store()

        store.apply_sync(SyncCommand(scope=Scope.GROUP, name="board", values={"x": 1}))

        assert store._groups == {}

    def test_client_scope_accepted(self) -> None:
        """Peer updates to client objects use the same path."""
        store, sent = make_store()
        obj = store.shared("profile")
        events: list[ChangeEvent] = []
        obj.on_change(events.append)

        store.apply_sync(SyncCommand(scope=Scope.CLIENT, name="profile", values={"rank": 3}))

        assert obj.get("rank") == 3
        assert events[0].origin == "server"
        assert sent == []

    def test_key_value_shape(self) -> None:
        """Singular key/value updates are merged too."""
        store, _ = make_store()

        store.apply_sync(SyncCommand(scope=Scope.GLOBAL, name="n", key="k", value="v"))

        assert store.global_shared("n").get("k") == "v"

    def test_last_write_wins(self) -> None:
        store, _ = make_store()
        obj = store.global_shared("n")

        store.apply_sync(SyncCommand(scope=Scope.GLOBAL, name="n", values={"a": 1, "b": 1}))
        store.apply_sync(SyncCommand(scope=Scope.GLOBAL, name="n", values={"a": 2}))

        assert obj.to_dict() == {"a": 2, "b": 1}

    def test_empty_update_no_event(self) -> None:
        """An update with no values fires nothing."""
        store, _ = make_store()
        obj = store.global_shared("n")
        events: list = []
        obj.on_change(events.append)

        store.apply_sync(SyncCommand(scope=Scope.GLOBAL, name="n", values={}))

        assert events == []
