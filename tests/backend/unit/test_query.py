from dmrelay.backend.models import Message, RoomSummary
from dmrelay.backend.query import QueryService
from dmrelay.backend.state import RelayState


def _populated_state() -> RelayState:
    state = RelayState()
    for room_id in ("amy-bob", "amy-dan", "bob-dan"):
        state.open_room(room_id)
    state.registry.append_message("amy-bob", Message(sender="bob", payload="yo"))
    state.tracker.increment_for("amy-bob", "amy")
    state.tracker.increment_for("amy-dan", "amy")
    state.tracker.increment_for("amy-dan", "amy")
    state.tracker.increment_for("bob-dan", "dan")
    return state


def test_list_rooms_pairs_each_room_with_unread_count() -> None:
    queries = QueryService(state=_populated_state())

    rooms = queries.list_rooms("amy")

    assert sorted(rooms, key=lambda room: room.room_id) == [
        RoomSummary(room_id="amy-bob", unread_count=1),
        RoomSummary(room_id="amy-dan", unread_count=2),
    ]


def test_list_rooms_defaults_missing_counter_to_zero() -> None:
    queries = QueryService(state=_populated_state())

    rooms = {room.room_id: room.unread_count for room in queries.list_rooms("bob")}

    assert rooms == {"amy-bob": 0, "bob-dan": 0}


def test_list_rooms_for_stranger_is_empty() -> None:
    queries = QueryService(state=_populated_state())

    assert queries.list_rooms("carol") == []
    assert queries.unread_total("carol") == 0


def test_unread_total_equals_sum_of_listed_rooms() -> None:
    queries = QueryService(state=_populated_state())

    for user_id in ("amy", "bob", "dan", "carol"):
        listed = queries.list_rooms(user_id)
        assert all(user_id in room.room_id.split("-") for room in listed)
        assert queries.unread_total(user_id) == sum(room.unread_count for room in listed)
