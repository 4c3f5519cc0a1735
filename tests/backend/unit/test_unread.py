from dmrelay.backend.unread import UnreadTracker


def test_reset_on_join_is_idempotent() -> None:
    tracker = UnreadTracker()
    tracker.increment_for("amy-bob", "amy")

    tracker.reset_on_join("amy-bob", "amy")
    tracker.reset_on_join("amy-bob", "amy")

    assert tracker.count_for("amy-bob", "amy") == 0


def test_increment_initializes_missing_counter() -> None:
    tracker = UnreadTracker()

    assert tracker.increment_for("amy-bob", "bob") == 1
    assert tracker.increment_for("amy-bob", "bob") == 2
    assert tracker.count_for("amy-bob", "bob") == 2


def test_count_for_defaults_to_zero() -> None:
    tracker = UnreadTracker()

    assert tracker.count_for("amy-bob", "amy") == 0
    assert tracker.as_dict() == {}


def test_total_for_sums_only_rooms_containing_user() -> None:
    tracker = UnreadTracker()
    tracker.increment_for("amy-bob", "amy")
    tracker.increment_for("amy-carol", "amy")
    tracker.increment_for("amy-carol", "amy")
    tracker.increment_for("bob-carol", "bob")
    # a counter keyed by a non-participant never counts toward the total
    tracker.increment_for("bob-carol", "amy")

    assert tracker.total_for("amy") == 3
    assert tracker.total_for("bob") == 1
    assert tracker.total_for("carol") == 0
