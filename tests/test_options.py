import pytest

from predictapi.schemas.event import EventCreate, EventResponse
from predictapi.utils.options import OptionShapeError, normalize_options


@pytest.mark.parametrize(
    "raw, expected",
    [
        (["Higher", "Lower"], ["Higher", "Lower"]),
        ([{"label": "$60k-$62k", "value": "a"}, {"label": "$62k+", "value": "b"}], ["a", "b"]),
        ([{"label": "Team A"}, {"label": "Team B"}], ["Team A", "Team B"]),
        ('["Higher", "Lower"]', ["Higher", "Lower"]),
        ('[{"label": "x", "value": "1"}, {"label": "y", "value": "2"}]', ["1", "2"]),
        ([1, 2, 3], ["1", "2", "3"]),
        (None, []),
    ],
)
def test_normalize_options_shapes(raw, expected):
    assert normalize_options(raw) == expected


def test_order_is_preserved():
    assert normalize_options(["c", "a", "b"]) == ["c", "a", "b"]


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"a": 1}',
        [{"description": "no id"}],
        ["a", "a"],
        [True, False],
    ],
)
def test_invalid_shapes_raise(raw):
    with pytest.raises(OptionShapeError):
        normalize_options(raw)


def test_event_create_requires_two_options():
    with pytest.raises(ValueError):
        EventCreate(
            title="one",
            options=["only"],
            start_time="2026-01-01T00:00:00Z",
            end_time="2026-01-02T00:00:00Z",
        )


def test_event_create_requires_end_after_start():
    with pytest.raises(ValueError):
        EventCreate(
            title="window",
            options=["a", "b"],
            start_time="2026-01-02T00:00:00Z",
            end_time="2026-01-01T00:00:00Z",
        )


def test_event_response_normalizes_stored_options():
    response = EventResponse(
        id=1,
        title="t",
        options='[{"label": "Up", "value": "UP"}, {"label": "Down", "value": "DOWN"}]',
        entry_fee=100,
        start_time="2026-01-01T00:00:00Z",
        end_time="2026-01-02T00:00:00Z",
        status="active",
        resolution_status="pending",
    )

    assert response.options == ["UP", "DOWN"]


def test_event_create_compares_naive_and_aware_times_as_utc():
    created = EventCreate(
        title="mixed offsets",
        options=["a", "b"],
        start_time="2030-01-01T00:00:00",
        end_time="2030-01-02T00:00:00Z",
    )
    assert created.start_time.tzinfo is None
    assert created.end_time.tzinfo is not None

    with pytest.raises(ValueError):
        EventCreate(
            title="mixed offsets reversed",
            options=["a", "b"],
            start_time="2030-01-02T00:00:00",
            end_time="2030-01-01T00:00:00Z",
        )
