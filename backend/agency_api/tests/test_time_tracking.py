"""
Time tracking tests for the agency backend.

Tests cover logging hours, the used-hours total kept on projects, editing
one's own entries and project hour reports.
"""
from fastapi import status

from agency_api.database.models import Project
from agency_api.services.time_tracking import recompute_used_hours

from .test_base import API, APIActions, BaseAPITest, PayloadFactory, bearer_headers


class TestTimeEntries(BaseAPITest, APIActions):
    """Test cases for time entry CRUD."""

    base_url = f"{API}/time-tracking"

    def test_create_entry(self, client, auth_headers, staff_user):
        project = self.create_project(client, auth_headers)

        entry = self.log_hours(client, auth_headers, project["id"], notes="Hero section")

        assert entry["user_id"] == str(staff_user.id)
        assert entry["hours"] == 1.5
        assert entry["date"] == "2024-03-04"
        assert entry["billable"] is True
        assert entry["billed"] is False

    def test_used_hours_is_sum_of_entries(self, client, auth_headers):
        """Test used hours follow every create, update and delete."""
        project = self.create_project(client, auth_headers)
        self.log_hours(client, auth_headers, project["id"], hours=1.5)
        second = self.log_hours(client, auth_headers, project["id"], hours=2.0)
        third = self.log_hours(client, auth_headers, project["id"], hours=0.5)
        project_url = f"{API}/projects/{project['id']}"

        assert client.get(project_url, headers=auth_headers).json()["used_hours"] == 4.0

        client.patch(f"{self.base_url}/entries/{second['id']}", json={"hours": 3.0}, headers=auth_headers)
        assert client.get(project_url, headers=auth_headers).json()["used_hours"] == 5.0

        client.delete(f"{self.base_url}/entries/{third['id']}", headers=auth_headers)
        assert client.get(project_url, headers=auth_headers).json()["used_hours"] == 4.5

    def test_recompute_used_hours_without_entries(self, client, auth_headers, db_session):
        """Test a project without entries recomputes to zero."""
        self.create_project(client, auth_headers)
        row = db_session.query(Project).one()
        row.used_hours = 12
        db_session.commit()

        recompute_used_hours(db_session, row.id)
        db_session.commit()
        db_session.expire_all()

        assert db_session.query(Project).one().used_hours == 0

    def test_entry_hours_minimum(self, client, auth_headers):
        project = self.create_project(client, auth_headers)

        result = client.post(
            f"{self.base_url}/entries",
            json=PayloadFactory.time_entry(project["id"], hours=0),
            headers=auth_headers
        )

        self.assert_validation_error(result, "hours")

    def test_update_rejects_null_hours(self, client, auth_headers):
        project = self.create_project(client, auth_headers)
        entry = self.log_hours(client, auth_headers, project["id"])
        url = f"{self.base_url}/entries/{entry['id']}"

        null_hours = client.patch(url, json={"hours": None}, headers=auth_headers)
        null_date = client.patch(url, json={"date": None}, headers=auth_headers)
        cleared_notes = client.patch(url, json={"notes": None}, headers=auth_headers)

        self.assert_validation_error(null_hours, "hours")
        self.assert_validation_error(null_date, "date")
        self.assert_success_response(cleared_notes)
        assert cleared_notes.json()["hours"] == 1.5
        assert client.get(f"{API}/projects/{project['id']}", headers=auth_headers).json()["used_hours"] == 1.5

    def test_entry_for_other_tenants_project(self, client, auth_headers, different_tenant_headers):
        """Test hours cannot be logged against another tenant's project."""
        project = self.create_project(client, auth_headers)

        result = client.post(
            f"{self.base_url}/entries",
            json=PayloadFactory.time_entry(project["id"]),
            headers=different_tenant_headers
        )

        self.assert_error_response(result, status.HTTP_404_NOT_FOUND, "Project not found")

    def test_entry_with_task_of_other_project(self, client, auth_headers):
        first = self.create_project(client, auth_headers)
        second = self.create_project(client, auth_headers)
        task = client.post(f"{API}/projects/{second['id']}/tasks", json={"title": "Design"}, headers=auth_headers).json()

        result = client.post(
            f"{self.base_url}/entries",
            json=PayloadFactory.time_entry(first["id"], task_id=task["id"]),
            headers=auth_headers
        )

        self.assert_error_response(result, status.HTTP_404_NOT_FOUND, "Task not found")

    def test_only_own_entries_can_be_changed(self, client, auth_headers, make_user, tenant):
        """Test colleagues cannot edit or delete each other's entries."""
        project = self.create_project(client, auth_headers)
        entry = self.log_hours(client, auth_headers, project["id"])
        colleague = bearer_headers(make_user(tenant, "colleague@example.com"))

        update = client.patch(f"{self.base_url}/entries/{entry['id']}", json={"hours": 8}, headers=colleague)
        delete = client.delete(f"{self.base_url}/entries/{entry['id']}", headers=colleague)

        self.assert_error_response(update, status.HTTP_404_NOT_FOUND, "Time entry not found")
        self.assert_not_found(delete)

    def test_my_entries(self, client, auth_headers, make_user, tenant):
        """Test listing returns only the caller's entries with totals."""
        project = self.create_project(client, auth_headers)
        self.log_hours(client, auth_headers, project["id"], hours=2, date="2024-03-01")
        self.log_hours(client, auth_headers, project["id"], hours=1, date="2024-03-05", billable=False)
        colleague = bearer_headers(make_user(tenant, "colleague@example.com"))
        self.log_hours(client, colleague, project["id"], hours=4)

        result = client.get(f"{self.base_url}/my-entries", headers=auth_headers)

        self.assert_success_response(result)
        data = result.json()
        assert data["total"] == 2
        assert data["total_hours"] == 3.0
        assert data["billable_hours"] == 2.0
        assert [e["date"] for e in data["entries"]] == ["2024-03-05", "2024-03-01"]

    def test_my_entries_date_range(self, client, auth_headers):
        project = self.create_project(client, auth_headers)
        self.log_hours(client, auth_headers, project["id"], date="2024-02-28")
        self.log_hours(client, auth_headers, project["id"], date="2024-03-02")

        result = client.get(
            f"{self.base_url}/my-entries",
            params={"start_date": "2024-03-01", "end_date": "2024-03-31"},
            headers=auth_headers
        )

        assert [e["date"] for e in result.json()["entries"]] == ["2024-03-02"]


class TestProjectReport(BaseAPITest, APIActions):
    """Test cases for the project hours report."""

    def test_report(self, client, auth_headers, make_user, tenant, staff_user):
        project = self.create_project(client, auth_headers, quoted_hours=5)
        self.log_hours(client, auth_headers, project["id"], hours=1.5, date="2024-03-04")
        self.log_hours(client, auth_headers, project["id"], hours=2.0, date="2024-03-05")
        colleague = bearer_headers(make_user(tenant, "colleague@example.com", first_name="Luis", last_name="Diaz"))
        self.log_hours(client, colleague, project["id"], hours=0.5, date="2024-03-05")

        result = client.get(f"{API}/time-tracking/projects/{project['id']}/report", headers=auth_headers)

        self.assert_success_response(result)
        report = result.json()
        assert report["quoted_hours"] == 5
        assert report["used_hours"] == 4.0
        assert report["remaining_hours"] == 1.0
        assert report["percentage_used"] == 80.0
        assert report["over_budget_warning"] is True
        assert report["by_date"] == {"2024-03-05": 2.5, "2024-03-04": 1.5}
        hours_by_user = {row["name"]: row["hours"] for row in report["by_user"]}
        assert hours_by_user == {"Ana Lopez": 3.5, "Luis Diaz": 0.5}
        assert len(report["entries"]) == 3

    def test_report_without_quoted_hours(self, client, auth_headers):
        project = self.create_project(client, auth_headers, quoted_hours=0)

        report = client.get(f"{API}/time-tracking/projects/{project['id']}/report", headers=auth_headers).json()

        assert report["percentage_used"] == 0
        assert report["over_budget_warning"] is False

    def test_report_other_tenant(self, client, auth_headers, different_tenant_headers):
        project = self.create_project(client, auth_headers)

        result = client.get(f"{API}/time-tracking/projects/{project['id']}/report", headers=different_tenant_headers)

        self.assert_not_found(result)
