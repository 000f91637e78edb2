"""Relay room membership tests."""

from safetrail.core.room_registry import RoomRegistry


def test_room_created_on_first_member_and_removed_with_last():
    rooms = RoomRegistry()
    assert rooms.add("s1", "a") is True
    assert rooms.add("s1", "b") is False
    assert rooms.participant_count("s1") == 2

    assert rooms.remove("s1", "a") is False
    assert "s1" in rooms
    assert rooms.remove("s1", "b") is True
    assert "s1" not in rooms
    assert len(rooms) == 0


def test_remove_connection_leaves_every_room():
    rooms = RoomRegistry()
    rooms.add("s1", "a")
    rooms.add("s2", "a")
    rooms.add("s2", "b")

    assert sorted(rooms.remove_connection("a")) == ["s1", "s2"]
    assert "s1" not in rooms
    assert rooms.members("s2") == frozenset({"b"})
    assert rooms.rooms_of("a") == []


def test_unknown_room_is_empty():
    rooms = RoomRegistry()
    assert rooms.members("nope") == frozenset()
    assert rooms.participant_count("nope") == 0
    assert rooms.remove("nope", "a") is False
    assert rooms.remove_connection("a") == []


def test_members_is_a_snapshot():
    rooms = RoomRegistry()
    rooms.add("s1", "a")
    snapshot = rooms.members("s1")
    rooms.add("s1", "b")
    assert snapshot == frozenset({"a"})
