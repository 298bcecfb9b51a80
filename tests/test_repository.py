import json

import pytest

from fleetmaint.forms import ComponentDraft, JobDraft, ShipDraft
from fleetmaint.models import JobStatus, NotificationKind, ShipStatus
from fleetmaint.repository import EntityNotFound, FleetRepo, IntegrityError, ValidationFailed
from fleetmaint.storage import StorageError


def _job_draft(**overrides):
    values = dict(ship_id="s1", component_id="c1", scheduled_date="2025-07-01",
                  description="Oil change", type="Preventive", priority="Low")
    values.update(overrides)
    return JobDraft(**values)


class TestLoad:
    def test_missing_keys_fall_back_to_seed(self, repo):
        snap = repo.snapshot()
        assert [s.id for s in snap.ships] == ["s1", "s2", "s3"]
        assert [c.id for c in snap.components] == ["c1", "c2", "c3", "c4"]
        assert [j.id for j in snap.jobs] == ["j1", "j2"]
        assert snap.notifications == ()

    def test_loading_does_not_write(self, repo, blobs):
        assert blobs.get("ships") is None

    def test_corrupt_blob_falls_back_to_seed(self, blobs, clock):
        blobs.set("ships", "{not json")
        r = FleetRepo(blobs, clock=clock)
        r.load()
        assert len(r.snapshot().ships) == 3

    def test_malformed_records_are_skipped(self, blobs, clock):
        blobs.set_json("ships", [
            {"id": "x1", "name": "Good", "imo": "1234567", "flag": "NO", "status": "Active"},
            {"id": "x2", "name": "Bad", "imo": "1234567", "flag": "NO", "status": "Sunk"},
            {"name": "no id"},
        ])
        r = FleetRepo(blobs, clock=clock)
        r.load()
        assert [s.id for s in r.snapshot().ships] == ["x1"]

    def test_empty_list_is_not_replaced_by_seed(self, blobs, clock):
        blobs.set_json("jobs", [])
        r = FleetRepo(blobs, clock=clock)
        r.load()
        assert r.snapshot().jobs == ()


class TestShips:
    def test_add_assigns_fresh_id_and_notifies(self, repo):
        ship = repo.add_ship(ShipDraft(name="Nordic Star", imo="1234567", flag="Norway"))
        snap = repo.snapshot()
        assert ship.id not in {"s1", "s2", "s3"}
        assert snap.ships[-1] == ship
        assert len(snap.notifications) == 1
        assert snap.notifications[0].message == 'Ship "Nordic Star" has been added'
        assert snap.notifications[0].kind is NotificationKind.SUCCESS
        assert snap.notifications[0].timestamp == "2025-06-01T12:00:00"

    def test_add_rejects_invalid_draft(self, repo):
        with pytest.raises(ValidationFailed) as err:
            repo.add_ship(ShipDraft(name="", imo="12", flag="Norway"))
        assert set(err.value.errors) == {"name", "imo"}
        assert repo.snapshot().notifications == ()

    def test_update(self, repo):
        ship = repo.update_ship("s1", status=ShipStatus.INACTIVE, flag="Liberia")
        assert ship.status is ShipStatus.INACTIVE
        assert repo.get_ship("s1").flag == "Liberia"
        assert repo.snapshot().notifications[0].message == "Ship has been updated"

    def test_update_cannot_change_id(self, repo):
        with pytest.raises(ValidationFailed):
            repo.update_ship("s1", id="zzz")

    def test_update_unknown_ship(self, repo):
        with pytest.raises(EntityNotFound):
            repo.update_ship("nope", name="x")

    @pytest.mark.parametrize("ship_id", ["s1", "s2", "s3"])
    def test_delete_cascades(self, repo, ship_id):
        repo.delete_ship(ship_id)
        snap = repo.snapshot()
        assert all(s.id != ship_id for s in snap.ships)
        assert all(c.ship_id != ship_id for c in snap.components)
        assert all(j.ship_id != ship_id for j in snap.jobs)
        assert len(snap.notifications) == 1
        assert snap.notifications[0].kind is NotificationKind.WARNING

    def test_delete_persists_every_collection(self, repo, blobs):
        repo.delete_ship("s1")
        assert [c["id"] for c in blobs.get_json("components")] == ["c2", "c4"]
        assert [j["id"] for j in blobs.get_json("jobs")] == ["j2"]
        assert [s["id"] for s in blobs.get_json("ships")] == ["s2", "s3"]


class TestComponents:
    def test_add_requires_existing_ship(self, repo):
        draft = ComponentDraft(ship_id="ghost", name="Pump", serial_number="P-1",
                               install_date="2024-01-01", last_maintenance_date="2025-01-01")
        with pytest.raises(IntegrityError):
            repo.add_component(draft)

    def test_add(self, repo):
        draft = ComponentDraft(ship_id="s3", name="Pump", serial_number="P-1",
                               install_date="2024-01-01", last_maintenance_date="2025-01-01")
        component = repo.add_component(draft)
        assert component.ship_id == "s3"
        assert repo.snapshot().notifications[0].message == 'Component "Pump" has been added'

    def test_delete_cascades_to_its_jobs_only(self, repo):
        repo.add_job(_job_draft(component_id="c3"))
        repo.delete_component("c1")
        snap = repo.snapshot()
        assert [c.id for c in snap.components] == ["c2", "c3", "c4"]
        assert all(j.component_id != "c1" for j in snap.jobs)
        assert {j.component_id for j in snap.jobs} == {"c2", "c3"}

    def test_cannot_move_component_with_jobs(self, repo):
        with pytest.raises(IntegrityError):
            repo.update_component("c1", ship_id="s2")

    def test_update_validates_dates(self, repo):
        with pytest.raises(ValidationFailed):
            repo.update_component("c1", last_maintenance_date="2019-01-01")


class TestJobs:
    def test_add_stamps_created_date(self, repo):
        job = repo.add_job(_job_draft())
        assert job.created_date == "2025-06-01"
        assert job.status is JobStatus.OPEN
        assert repo.snapshot().notifications[0].message == "Job has been created"

    def test_component_must_belong_to_ship(self, repo):
        with pytest.raises(IntegrityError):
            repo.add_job(_job_draft(ship_id="s2", component_id="c1"))
        assert len(repo.snapshot().jobs) == 2

    def test_status_update_to_completed_is_success(self, repo):
        repo.set_job_status("j1", JobStatus.COMPLETED)
        note = repo.snapshot().notifications[0]
        assert note.message == 'Job status updated to "Completed"'
        assert note.kind is NotificationKind.SUCCESS

    def test_status_update_other_is_info(self, repo):
        repo.update_job("j1", status="Cancelled")
        note = repo.snapshot().notifications[0]
        assert note.message == 'Job status updated to "Cancelled"'
        assert note.kind is NotificationKind.INFO

    def test_plain_update_is_info(self, repo):
        repo.update_job("j1", description="Updated scope")
        note = repo.snapshot().notifications[0]
        assert note.message == "Job has been updated"
        assert note.kind is NotificationKind.INFO

    def test_created_date_is_immutable(self, repo):
        with pytest.raises(ValidationFailed):
            repo.update_job("j1", created_date="2030-01-01")
        job = repo.update_job("j1", scheduled_date="2025-09-09")
        assert job.created_date == "2025-05-20"

    def test_bad_status_is_rejected(self, repo):
        with pytest.raises(ValidationFailed):
            repo.set_job_status("j1", "Lost")

    def test_delete(self, repo):
        repo.delete_job("j2")
        assert [j.id for j in repo.snapshot().jobs] == ["j1"]
        with pytest.raises(EntityNotFound):
            repo.delete_job("j2")


class TestNotifications:
    def test_every_mutation_appends_exactly_one(self, repo):
        ship = repo.add_ship(ShipDraft(name="A", imo="7654321", flag="Malta"))
        repo.update_ship(ship.id, name="B")
        repo.add_component(ComponentDraft(ship_id=ship.id, name="Gyro", serial_number="G1",
                                          install_date="2024-01-01", last_maintenance_date="2024-01-01"))
        repo.update_job("j1", priority="Critical")
        repo.delete_ship(ship.id)
        assert len(repo.snapshot().notifications) == 5

    def test_newest_first(self, repo):
        repo.add_notification("first")
        repo.add_notification("second", NotificationKind.ERROR)
        messages = [n.message for n in repo.snapshot().notifications]
        assert messages == ["second", "first"]

    def test_dismiss_keeps_entry(self, repo):
        note = repo.add_notification("hello")
        repo.dismiss_notification(note.id)
        notes = repo.snapshot().notifications
        assert len(notes) == 1
        assert notes[0].dismissed is True

    def test_dismiss_unknown(self, repo):
        with pytest.raises(EntityNotFound):
            repo.dismiss_notification("nope")

    def test_listener_receives_new_entries(self, repo):
        seen = []
        repo.subscribe(seen.append)
        repo.delete_job("j1")
        assert [n.message for n in seen] == ["Job has been deleted"]
        repo.unsubscribe(seen.append)
        repo.delete_job("j2")
        assert len(seen) == 1


class TestPersistence:
    def test_round_trip(self, repo, blobs, clock):
        repo.add_ship(ShipDraft(name="Round Trip", imo="1111111", flag="Cyprus"))
        repo.update_job("j2", status="Completed")
        repo.add_notification("note")
        before = repo.snapshot()

        reloaded = FleetRepo(blobs, clock=clock)
        reloaded.load()
        assert reloaded.snapshot() == before

    def test_blob_layout_uses_saved_keys(self, repo, blobs):
        repo.update_job("j1", description="x")
        raw = json.loads(blobs.get("jobs"))
        assert raw[0]["shipId"] == "s1"
        assert raw[0]["componentId"] == "c1"
        assert raw[0]["createdDate"] == "2025-05-20"
        assert raw[1]["status"] == "In Progress"

    def test_failed_write_leaves_state_untouched(self, repo, blobs, monkeypatch):
        real_set = blobs.set

        def flaky(key, value):
            if key == "components":
                raise StorageError(key, "disk full")
            return real_set(key, value)

        monkeypatch.setattr(blobs, "set", flaky)
        before = repo.snapshot()
        with pytest.raises(StorageError):
            repo.delete_ship("s1")
        assert repo.snapshot() == before
        assert blobs.get("ships") is None
        assert blobs.get("notifications") is None

    def test_failed_write_restores_previous_blob(self, repo, blobs, monkeypatch):
        repo.update_ship("s2", name="Renamed")
        saved_ships = blobs.get("ships")
        saved_notes = blobs.get("notifications")
        real_set = blobs.set

        def flaky(key, value):
            if key == "jobs":
                raise StorageError(key, "read-only")
            return real_set(key, value)

        monkeypatch.setattr(blobs, "set", flaky)
        with pytest.raises(StorageError):
            repo.delete_ship("s2")
        assert blobs.get("ships") == saved_ships
        assert blobs.get("notifications") == saved_notes
        assert repo.get_ship("s2").name == "Renamed"


class TestLegacyRecords:
    def _load(self, blobs, clock, **collections):
        for key, records in collections.items():
            blobs.set_json(key, records)
        r = FleetRepo(blobs, clock=clock)
        r.load()
        return r

    def test_status_change_on_job_without_description(self, blobs, clock):
        record = {"id": "j9", "shipId": "s1", "componentId": "c1", "type": "Repair",
                  "priority": "Low", "status": "Open", "assignedEngineerId": "3",
                  "scheduledDate": "2025-06-10", "createdDate": "2025-05-01"}
        r = self._load(blobs, clock, jobs=[record])
        job = r.set_job_status("j9", JobStatus.COMPLETED)
        assert job.status is JobStatus.COMPLETED
        assert job.description == ""

    def test_status_change_on_ship_with_legacy_imo(self, blobs, clock):
        record = {"id": "x", "name": "Old Timer", "imo": "IMO 9811000", "flag": "Panama", "status": "Active"}
        r = self._load(blobs, clock, ships=[record])
        ship = r.update_ship("x", status=ShipStatus.INACTIVE)
        assert ship.status is ShipStatus.INACTIVE
        assert ship.imo == "IMO 9811000"

    def test_edited_field_is_still_validated(self, blobs, clock):
        record = {"id": "x", "name": "Old Timer", "imo": "IMO 9811000", "flag": "Panama", "status": "Active"}
        r = self._load(blobs, clock, ships=[record])
        with pytest.raises(ValidationFailed) as err:
            r.update_ship("x", imo="98110")
        assert set(err.value.errors) == {"imo"}

    def test_date_pair_is_checked_together(self, repo):
        with pytest.raises(ValidationFailed) as err:
            repo.update_component("c1", install_date="2024-12-01")
        assert set(err.value.errors) == {"last_maintenance_date"}

    def test_broken_references_are_logged_and_kept(self, blobs, clock, caplog):
        components = [{"id": "c8", "shipId": "gone", "name": "Winch", "serialNumber": "W-1",
                       "installDate": "2020-01-01", "lastMaintenanceDate": "2024-01-01"}]
        jobs = [{"id": "j7", "shipId": "s2", "componentId": "c8", "type": "Repair",
                 "priority": "Low", "status": "Open", "scheduledDate": "2025-06-10"}]
        with caplog.at_level("WARNING", logger="fleetmaint.repository"):
            r = self._load(blobs, clock, components=components, jobs=jobs)
        assert [c.id for c in r.snapshot().components] == ["c8"]
        assert [j.id for j in r.snapshot().jobs] == ["j7"]
        assert "component 'c8' refers to missing ship 'gone'" in caplog.text
        assert "job 'j7': component 'c8' is not on ship 's2'" in caplog.text

    def test_seed_loads_without_reference_warnings(self, blobs, clock, caplog):
        with caplog.at_level("WARNING", logger="fleetmaint.repository"):
            self._load(blobs, clock)
        assert caplog.text == ""
