import pytest
from reservo.domain.actors import Actor, Capability, Role, has_capability
from reservo.domain.policy import BookingWindow


def test_admin_holds_every_capability() -> None:
    admin = Actor(id="a", role=Role.ADMIN)
    assert has_capability(admin, Capability.CANCEL_ANY)
    assert has_capability(admin, Capability.VIEW_ALL)


def test_user_holds_no_capability() -> None:
    user = Actor(id="u")
    assert user.role == Role.USER
    assert not has_capability(user, Capability.CANCEL_ANY)
    assert not has_capability(user, Capability.VIEW_ALL)


def test_booking_window_rejects_inverted_hours() -> None:
    with pytest.raises(ValueError):
        BookingWindow(opening_hour=22, closing_hour=14)


def test_booking_window_rejects_inverted_durations() -> None:
    with pytest.raises(ValueError):
        BookingWindow(min_duration_minutes=120, max_duration_minutes=60)
