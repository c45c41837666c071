from datetime import date
from zoneinfo import ZoneInfo

from conftest import PARIS, make_reservation

from dashboard.services.grouping import build_calendar_month, local_date

UTC = ZoneInfo("UTC")


def _cells_by_date(month):
    return {cell.date: cell for cell in month.cells if cell.date is not None}


def test_grid_is_made_of_complete_weeks(labels):
    # March 2024 starts on a Friday, September 2024 on a Sunday, February 2024 on a Thursday
    for year, month, leading, total in [(2024, 3, 4, 35), (2024, 9, 6, 42), (2024, 2, 3, 35)]:
        grid = build_calendar_month(year, month, [], date(2024, 3, 15), PARIS, labels)
        assert len(grid.cells) == total
        assert len(grid.cells) % 7 == 0
        assert all(cell.date is None for cell in grid.cells[:leading])
        assert grid.cells[leading].date == date(year, month, 1)


def test_trailing_placeholders_after_last_day(labels):
    grid = build_calendar_month(2024, 9, [], date(2024, 9, 1), PARIS, labels)
    last_day_index = next(i for i, cell in enumerate(grid.cells) if cell.date == date(2024, 9, 30))
    assert all(cell.date is None for cell in grid.cells[last_day_index + 1:])
    assert len(grid.cells) - last_day_index - 1 == 6


def test_empty_list_gives_empty_grid(labels):
    grid = build_calendar_month(2024, 3, [], date(2024, 3, 15), PARIS, labels)
    assert all(cell.reservations == [] for cell in grid.cells)
    assert grid.title == "March 2024"
    assert grid.week_days[0] == "Mon"
    assert grid.week_days[-1] == "Sun"


def test_each_scheduled_reservation_lands_in_exactly_one_matching_cell(labels):
    reservations = [
        make_reservation("a", "2024-03-01T08:00:00"),
        make_reservation("b", "2024-03-15T10:00:00"),
        make_reservation("c", "2024-03-15T23:30:00+00:00"),  # 00:30 on the 16th in Paris
        make_reservation("d", "2024-03-31T12:00:00+02:00"),
        make_reservation("e", "2024-04-02T12:00:00"),  # other month
    ]
    grid = build_calendar_month(2024, 3, reservations, date(2024, 3, 15), PARIS, labels)

    placements = {}
    for cell in grid.cells:
        for reservation in cell.reservations:
            assert reservation.id not in placements
            placements[reservation.id] = cell.date
            assert local_date(reservation.scheduled_at, PARIS) == cell.date

    assert placements == {
        "a": date(2024, 3, 1),
        "b": date(2024, 3, 15),
        "c": date(2024, 3, 16),
        "d": date(2024, 3, 31),
    }


def test_day_membership_uses_viewer_zone_not_utc(labels):
    late_evening = make_reservation("late", "2024-03-15T23:30:00+00:00")

    in_utc = _cells_by_date(build_calendar_month(2024, 3, [late_evening], date(2024, 3, 15), UTC, labels))
    in_paris = _cells_by_date(build_calendar_month(2024, 3, [late_evening], date(2024, 3, 15), PARIS, labels))

    assert [r.id for r in in_utc[date(2024, 3, 15)].reservations] == ["late"]
    assert [r.id for r in in_paris[date(2024, 3, 16)].reservations] == ["late"]
    assert in_paris[date(2024, 3, 15)].reservations == []


def test_unscheduled_reservations_are_left_out(labels):
    reservations = [make_reservation("none"), make_reservation("some", "2024-03-05T10:00:00")]
    grid = build_calendar_month(2024, 3, reservations, date(2024, 3, 15), PARIS, labels)
    ids = [r.id for cell in grid.cells for r in cell.reservations]
    assert ids == ["some"]


def test_today_and_past_flags(labels):
    grid = _cells_by_date(build_calendar_month(2024, 3, [], date(2024, 3, 15), PARIS, labels))

    assert grid[date(2024, 3, 15)].is_today is True
    assert grid[date(2024, 3, 15)].is_past is False
    assert grid[date(2024, 3, 14)].is_past is True
    assert grid[date(2024, 3, 16)].is_past is False
    assert sum(cell.is_today for cell in grid.values()) == 1


def test_reservations_within_a_day_sorted_by_time_with_stable_ties(labels):
    reservations = [
        make_reservation("late", "2024-03-15T16:00:00"),
        make_reservation("tie-1", "2024-03-15T09:00:00"),
        make_reservation("early", "2024-03-15T08:00:00"),
        make_reservation("tie-2", "2024-03-15T09:00:00"),
    ]
    grid = _cells_by_date(build_calendar_month(2024, 3, reservations, date(2024, 3, 15), PARIS, labels))
    assert [r.id for r in grid[date(2024, 3, 15)].reservations] == ["early", "tie-1", "tie-2", "late"]


def test_scenario_reservation_today(labels):
    reservation = make_reservation("r", "2024-03-15T10:00:00")
    grid = _cells_by_date(build_calendar_month(2024, 3, [reservation], date(2024, 3, 15), PARIS, labels))
    cell = grid[date(2024, 3, 15)]
    assert cell.is_today
    assert [r.id for r in cell.reservations] == ["r"]
