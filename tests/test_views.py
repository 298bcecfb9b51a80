from dataclasses import replace
from datetime import date, datetime

import pytest

from fleetmaint import views
from fleetmaint.models import Component, JobPriority, JobStatus, Notification, NotificationKind, ShipStatus
from fleetmaint.seed import seed_components, seed_jobs, seed_ships

TODAY = date(2025, 6, 1)


def _component(last_maintenance):
    return Component(id="cx", ship_id="s1", name="Gyro", serial_number="G-1",
                     install_date="2020-01-01", last_maintenance_date=last_maintenance)


class TestOverdue:
    def test_exactly_ninety_days_is_not_overdue(self):
        assert not views.is_component_overdue(_component("2025-03-03"), TODAY)

    def test_ninety_one_days_is_overdue(self):
        assert views.is_component_overdue(_component("2025-03-02"), TODAY)

    def test_unparseable_date_is_not_overdue(self):
        assert not views.is_component_overdue(_component(""), TODAY)

    def test_seed_components_are_all_overdue(self):
        assert len(views.overdue_components(seed_components(), TODAY)) == 4

    def test_job_overdue_by_scheduled_date(self):
        j1, j2 = seed_jobs()
        assert not views.is_job_overdue(j1, TODAY)
        assert views.is_job_overdue(j2, TODAY)
        assert not views.is_job_overdue(replace(j2, status=JobStatus.COMPLETED), TODAY)
        assert not views.is_job_overdue(replace(j2, scheduled_date="2025-06-01"), TODAY)


class TestFilters:
    def setup_method(self):
        self.ships = seed_ships()
        self.components = seed_components()
        self.jobs = seed_jobs()

    def test_ship_search_is_case_insensitive(self):
        assert [s.id for s in views.filter_ships(self.ships, "MAERSK")] == ["s2"]
        assert [s.id for s in views.filter_ships(self.ships, "panama")] == ["s1", "s3"]
        assert [s.id for s in views.filter_ships(self.ships, "9684")] == ["s3"]

    def test_ship_status_and_search_combine(self):
        found = views.filter_ships(self.ships, "panama", ShipStatus.ACTIVE)
        assert [s.id for s in found] == ["s1", "s3"]
        assert views.filter_ships(self.ships, "panama", ShipStatus.UNDER_MAINTENANCE) == []

    def test_all_sentinel_bypasses(self):
        assert views.filter_ships(self.ships, "", views.ALL) == self.ships

    def test_component_search(self):
        found = views.filter_components(self.components, "nav")
        assert [c.id for c in found] == ["c3"]
        assert [c.id for c in views.filter_components(self.components, "rad-")] == ["c2"]

    def test_jobs_completed_any_priority(self):
        jobs = [
            self.jobs[0],
            replace(self.jobs[1], status=JobStatus.COMPLETED),
            replace(self.jobs[0], id="j3", status=JobStatus.COMPLETED, priority=JobPriority.LOW),
        ]
        found = views.filter_jobs(jobs, self.ships, self.components, status="Completed", priority="all")
        assert [j.id for j in found] == ["j2", "j3"]

    def test_jobs_search_matches_ship_and_component_names(self):
        by_ship = views.filter_jobs(self.jobs, self.ships, self.components, search="ever given")
        by_component = views.filter_jobs(self.jobs, self.ships, self.components, search="radar")
        assert [j.id for j in by_ship] == ["j1"]
        assert [j.id for j in by_component] == ["j2"]

    def test_jobs_priority_filter(self):
        found = views.filter_jobs(self.jobs, self.ships, self.components, priority=JobPriority.CRITICAL)
        assert [j.id for j in found] == ["j2"]


class TestKpis:
    def test_seed_dashboard(self):
        kpis = views.compute_kpis(seed_ships(), seed_components(), seed_jobs(), TODAY)
        assert kpis.total_ships == 3
        assert kpis.active_ships == 2
        assert kpis.ships_under_maintenance == 1
        assert kpis.total_jobs == 2
        assert kpis.active_jobs == 2
        assert kpis.completed_jobs == 0
        assert kpis.overdue_components == 4
        assert kpis.critical_jobs == 1
        assert kpis.overdue_jobs == 1
        assert kpis.jobs_by_priority[JobPriority.HIGH] == 1

    def test_empty_fleet(self):
        kpis = views.compute_kpis([], [], [], TODAY)
        assert kpis.total_ships == 0
        assert all(count == 0 for count in kpis.jobs_by_status.values())

    def test_completed_critical_is_not_counted(self):
        jobs = [replace(j, status=JobStatus.COMPLETED) for j in seed_jobs()]
        kpis = views.compute_kpis(seed_ships(), seed_components(), jobs, TODAY)
        assert kpis.critical_jobs == 0
        assert kpis.completed_jobs == 2
        assert kpis.overdue_jobs == 0
        assert kpis.active_jobs == 0

    def test_components_on_ship(self):
        assert [c.id for c in views.components_on_ship("s1", seed_components())] == ["c1", "c3"]
        assert views.components_on_ship(None, seed_components()) == []

    def test_ship_stats(self):
        stats = views.ship_stats("s1", seed_components(), seed_jobs(), TODAY)
        assert stats.components == 2
        assert stats.overdue_components == 2
        assert stats.total_jobs == 1
        assert stats.critical_jobs == 0

    def test_maintenance_history_only_completed_newest_first(self):
        j1, j2 = seed_jobs()
        jobs = [
            replace(j1, id="a", status=JobStatus.COMPLETED, scheduled_date="2025-01-01"),
            replace(j1, id="b", status=JobStatus.COMPLETED, scheduled_date="2025-04-01"),
            j1,
            replace(j2, status=JobStatus.COMPLETED),
        ]
        assert [j.id for j in views.maintenance_history("s1", jobs)] == ["b", "a"]


class TestCalendar:
    @pytest.mark.parametrize("year, month, delta, expected", [
        (2025, 12, 1, (2026, 1)),
        (2025, 1, -1, (2024, 12)),
        (2025, 6, 0, (2025, 6)),
        (2025, 6, -18, (2023, 12)),
    ])
    def test_shift_month(self, year, month, delta, expected):
        assert views.shift_month(year, month, delta) == expected

    def test_month_grid_starts_on_sunday(self):
        grid = views.month_grid(2025, 6)
        assert grid[0] == [1, 2, 3, 4, 5, 6, 7]
        assert grid[-1] == [29, 30, None, None, None, None, None]

    def test_month_grid_pads_leading_days(self):
        grid = views.month_grid(2025, 5)
        assert grid[0] == [None, None, None, None, 1, 2, 3]

    def test_jobs_by_date(self):
        assert list(views.jobs_by_date(seed_jobs(), 2025, 6)) == ["2025-06-05"]
        assert list(views.jobs_by_date(seed_jobs(), 2025, 5)) == ["2025-05-28"]
        assert views.jobs_by_date(seed_jobs(), 2025, 7) == {}

    def test_day_cell_overflow(self):
        j1 = seed_jobs()[0]
        jobs = [replace(j1, id=str(n)) for n in range(3)]
        preview, more = views.day_cell(jobs, date(2025, 6, 5))
        assert [j.id for j in preview] == ["0", "1"]
        assert more == 1

    def test_day_cell_from_month_buckets(self):
        j1 = seed_jobs()[0]
        jobs = seed_jobs() + [replace(j1, id="j3"), replace(j1, id="j4")]
        buckets = views.jobs_by_date(jobs, 2025, 6)
        preview, more = views.day_cell(buckets.get("2025-06-05", []), date(2025, 6, 5))
        assert [j.id for j in preview] == ["j1", "j3"]
        assert more == 1
        assert views.day_cell(buckets.get("2025-06-06", []), date(2025, 6, 6)) == ([], 0)

    def test_upcoming_skips_completed_and_sorts(self):
        j1 = seed_jobs()[0]
        jobs = [
            replace(j1, id="late", scheduled_date="2025-06-20"),
            replace(j1, id="done", scheduled_date="2025-06-02", status=JobStatus.COMPLETED),
            replace(j1, id="early", scheduled_date="2025-06-03"),
            replace(j1, id="july", scheduled_date="2025-07-01"),
        ]
        assert [j.id for j in views.upcoming_jobs(jobs, 2025, 6)] == ["early", "late"]
        assert [j.id for j in views.upcoming_jobs(jobs, 2025, 6, limit=1)] == ["early"]


class TestNotificationFeed:
    def _note(self, n, dismissed=False):
        return Notification(id=str(n), message=f"m{n}", kind=NotificationKind.INFO,
                            timestamp="2025-06-01T11:00:00", dismissed=dismissed)

    def test_active_excludes_dismissed_and_truncates(self):
        notes = [self._note(n, dismissed=(n % 2 == 0)) for n in range(30)]
        active = views.active_notifications(notes)
        assert len(active) == 10
        assert all(not n.dismissed for n in active)
        assert active[0].id == "1"
        assert len(views.active_notifications(notes, limit=None)) == 15

    @pytest.mark.parametrize("timestamp, expected", [
        ("2025-06-01T11:30:00", "30m ago"),
        ("2025-06-01T12:00:00", "0m ago"),
        ("2025-06-01T09:00:00", "3h ago"),
        ("2025-05-30T10:00:00", "2025-05-30"),
        ("garbage", ""),
    ])
    def test_relative_time(self, timestamp, expected):
        assert views.format_relative_time(timestamp, datetime(2025, 6, 1, 12, 0)) == expected
