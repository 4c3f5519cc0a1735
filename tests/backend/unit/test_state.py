from dmrelay.backend.models import Message, Snapshot
from dmrelay.backend.state import RelayState


def test_open_room_creates_history_and_counters() -> None:
    state = RelayState()

    room = state.open_room("amy-bob")

    assert room.history == []
    assert state.registry.room_ids() == ["amy-bob"]
    assert state.tracker.as_dict() == {"amy-bob": {}}


def test_snapshot_round_trip_reproduces_history_and_counters() -> None:
    state = RelayState()
    state.open_room("amy-bob")
    state.registry.append_message("amy-bob", Message(sender="amy", payload={"text": "hi"}))
    state.registry.append_message("amy-bob", Message(sender="bob", payload="yo"))
    state.tracker.reset_on_join("amy-bob", "amy")
    state.tracker.increment_for("amy-bob", "amy")

    restored = RelayState.from_snapshot(state.snapshot())

    assert restored.registry.history_of("amy-bob") == state.registry.history_of("amy-bob")
    assert restored.tracker.as_dict() == {"amy-bob": {"amy": 1}}
    assert restored.snapshot() == state.snapshot()


def test_from_snapshot_opens_rooms_known_only_by_counters() -> None:
    snapshot = Snapshot(rooms={}, unread={"amy-bob": {"bob": 2}})

    state = RelayState.from_snapshot(snapshot)

    assert state.registry.history_of("amy-bob") == ()
    assert state.tracker.count_for("amy-bob", "bob") == 2


def test_restored_messages_keep_extra_fields() -> None:
    snapshot = Snapshot(
        rooms={"amy-bob": [{"sender": "amy", "message": "hi", "time": "10:00"}]},
        unread={"amy-bob": {"bob": 1}},
    )

    state = RelayState.from_snapshot(snapshot)
    message = state.registry.history_of("amy-bob")[0]

    assert message.sender == "amy"
    assert message.extra == {"message": "hi", "time": "10:00"}
    assert state.snapshot().rooms["amy-bob"][0]["message"] == "hi"
