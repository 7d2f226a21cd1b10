"""
Quote lifecycle tests for the agency backend.

Tests cover quote numbering, public submission and viewing, staff
management, statistics and conversion into projects.
"""
import json
from datetime import datetime, timezone
from fastapi import status

from agency_api.database.models import Client, Quote
from agency_api.services.quotes import format_quote_number, next_quote_number

from .test_base import API, APIActions, BaseAPITest, PayloadFactory

CURRENT_YEAR = datetime.now(timezone.utc).year


def stored_quote(tenant, quote_number, created_at=None, **overrides) -> Quote:
    data = {
        "tenant_id": tenant.id,
        "quote_number": quote_number,
        "client_name": "Legacy Client",
        "client_email": "legacy@example.com",
        "project_name": "Legacy Project",
        "project_type": "web",
        "services": [],
        "subtotal": 100,
        "total": 100,
    }
    if created_at is not None:
        data["created_at"] = created_at
    return Quote(**{**data, **overrides})


class TestQuoteNumbering(BaseAPITest, APIActions):
    """Test cases for quote number allocation."""

    def test_format(self):
        assert format_quote_number(2024, 7) == "QUO-2024-0007"
        assert format_quote_number(2024, 12345) == "QUO-2024-12345"

    def test_numbers_are_sequential(self, client):
        numbers = [self.submit_quote(client)["quote_number"] for _ in range(3)]

        assert numbers == [
            f"QUO-{CURRENT_YEAR}-0001",
            f"QUO-{CURRENT_YEAR}-0002",
            f"QUO-{CURRENT_YEAR}-0003",
        ]

    def test_sequence_starts_after_existing_quotes(self, client, tenant, db_session):
        """Test the first number of a year follows the quotes already stored that year."""
        db_session.add(stored_quote(tenant, "LEGACY-1"))
        db_session.add(stored_quote(tenant, "LEGACY-2"))
        db_session.commit()

        quote = self.submit_quote(client)

        assert quote["quote_number"] == f"QUO-{CURRENT_YEAR}-0003"

    def test_sequences_are_per_tenant(self, client, different_tenant_headers):
        self.submit_quote(client)

        result = client.post(f"{API}/quotes/admin", json=PayloadFactory.quote(), headers=different_tenant_headers)

        self.assert_success_response(result, status.HTTP_201_CREATED)
        assert result.json()["quote_number"] == f"QUO-{CURRENT_YEAR}-0001"

    def test_sequences_are_per_year(self, tenant, db_session):
        first = next_quote_number(db_session, tenant.id, now=datetime(2023, 5, 1, tzinfo=timezone.utc))
        second = next_quote_number(db_session, tenant.id, now=datetime(2023, 11, 1, tzinfo=timezone.utc))
        other_year = next_quote_number(db_session, tenant.id, now=datetime(2022, 1, 1, tzinfo=timezone.utc))
        db_session.commit()

        assert (first, second, other_year) == ("QUO-2023-0001", "QUO-2023-0002", "QUO-2022-0001")

    def test_number_collision_is_a_conflict(self, client, tenant, db_session):
        """Test a taken number is reported as 409 rather than stored twice."""
        db_session.add(stored_quote(
            tenant,
            f"QUO-{CURRENT_YEAR}-0001",
            created_at=datetime(CURRENT_YEAR - 1, 6, 1, tzinfo=timezone.utc)
        ))
        db_session.commit()

        result = client.post(f"{API}/quotes", json=PayloadFactory.quote())

        self.assert_conflict(result)
        assert result.json()["detail"] == "Quote number already exists"


class TestPublicQuotes(BaseAPITest, APIActions):
    """Test cases for the public quote routes."""

    def test_submit_quote(self, client, tenant):
        quote = self.submit_quote(client)

        assert quote["tenant_id"] == str(tenant.id)
        assert quote["status"] == "DRAFT"
        assert quote["total"] == 3480
        assert quote["services"][0]["name"] == "Design"
        assert quote["project_id"] is None

    def test_submit_quote_validation(self, client):
        result = client.post(f"{API}/quotes", json=PayloadFactory.quote(total=0))

        self.assert_validation_error(result, "total")

    def test_submit_quote_with_metadata(self, client):
        quote = self.submit_quote(client, metadata={"utm_source": "newsletter"})

        assert quote["metadata"] == {"utm_source": "newsletter"}

    def test_submit_without_default_tenant(self, client, settings):
        settings.default_tenant_id = None

        result = client.post(f"{API}/quotes", json=PayloadFactory.quote())

        self.assert_error_response(result, status.HTTP_400_BAD_REQUEST, "Default tenant not configured")

    def test_submit_with_unknown_default_tenant(self, client, settings):
        settings.default_tenant_id = "not-a-tenant-id"

        result = client.post(f"{API}/quotes", json=PayloadFactory.quote())

        self.assert_error_response(result, status.HTTP_400_BAD_REQUEST, "Default tenant not found")

    def test_view_marks_quote_viewed(self, client, auth_headers):
        quote = self.submit_quote(client)

        result = client.get(f"{API}/quotes/public/{quote['quote_number']}")

        self.assert_success_response(result)
        data = result.json()
        assert data["status"] == "VIEWED"
        assert "internal_notes" not in data
        stored = client.get(f"{API}/quotes/{quote['id']}", headers=auth_headers).json()
        assert stored["status"] == "VIEWED"

    def test_view_keeps_decided_status(self, client, auth_headers):
        quote = self.submit_quote(client)
        client.patch(f"{API}/quotes/{quote['id']}/approve", headers=auth_headers)

        result = client.get(f"{API}/quotes/public/{quote['quote_number']}")

        assert result.json()["status"] == "APPROVED"

    def test_view_unknown_quote(self, client):
        result = client.get(f"{API}/quotes/public/QUO-1999-0001")

        self.assert_not_found(result)


class TestQuoteManagement(BaseAPITest, APIActions):
    """Test cases for staff quote management."""

    base_url = f"{API}/quotes"

    def test_admin_create(self, client, auth_headers):
        data = {**PayloadFactory.quote(), "internal_notes": "Returning client", "status": "SENT"}

        result = client.post(f"{self.base_url}/admin", json=data, headers=auth_headers)

        self.assert_success_response(result, status.HTTP_201_CREATED)
        assert result.json()["internal_notes"] == "Returning client"
        assert result.json()["status"] == "SENT"

    def test_management_requires_token(self, client):
        self.assert_unauthorized(client.get(self.base_url))
        self.assert_unauthorized(client.post(f"{self.base_url}/admin", json=PayloadFactory.quote()))

    def test_list_and_filter(self, client, auth_headers):
        first = self.submit_quote(client, client_name="Maria Garcia")
        self.submit_quote(client, client_name="Pedro Ruiz", client_email="pedro@ruiz.example.com")
        client.patch(f"{self.base_url}/{first['id']}/approve", headers=auth_headers)

        approved = client.get(self.base_url, params={"status": "APPROVED"}, headers=auth_headers).json()
        searched = client.get(self.base_url, params={"search": "pedro"}, headers=auth_headers).json()
        ordered = client.get(
            self.base_url,
            params={"order_by": "quote_number", "order_direction": "asc"},
            headers=auth_headers
        ).json()

        assert [q["id"] for q in approved["quotes"]] == [first["id"]]
        assert [q["client_name"] for q in searched["quotes"]] == ["Pedro Ruiz"]
        assert [q["quote_number"] for q in ordered["quotes"]] == [
            f"QUO-{CURRENT_YEAR}-0001", f"QUO-{CURRENT_YEAR}-0002"
        ]
        assert ordered["total"] == 2
        assert ordered["total_pages"] == 1

    def test_quotes_are_tenant_scoped(self, client, different_tenant_headers):
        quote = self.submit_quote(client)

        self.assert_not_found(client.get(f"{self.base_url}/{quote['id']}", headers=different_tenant_headers))
        listed = client.get(self.base_url, headers=different_tenant_headers).json()
        assert listed["total"] == 0

    def test_update_and_delete(self, client, auth_headers):
        quote = self.submit_quote(client)

        updated = client.patch(
            f"{self.base_url}/{quote['id']}",
            json={"notes": "Updated scope", "metadata": {"revision": 2}},
            headers=auth_headers
        )
        deleted = client.delete(f"{self.base_url}/{quote['id']}", headers=auth_headers)

        self.assert_success_response(updated)
        assert updated.json()["notes"] == "Updated scope"
        assert updated.json()["metadata"] == {"revision": 2}
        assert updated.json()["project_name"] == "Bakery Website"
        assert deleted.status_code == status.HTTP_204_NO_CONTENT
        self.assert_not_found(client.get(f"{self.base_url}/{quote['id']}", headers=auth_headers))

    def test_update_rejects_null_for_required_fields(self, client, auth_headers):
        """Test required fields cannot be cleared while optional ones can."""
        quote = self.submit_quote(client)
        url = f"{self.base_url}/{quote['id']}"

        null_status = client.patch(url, json={"status": None}, headers=auth_headers)
        null_total = client.patch(url, json={"total": None}, headers=auth_headers)
        cleared_notes = client.patch(url, json={"notes": None}, headers=auth_headers)

        self.assert_validation_error(null_status, "status")
        self.assert_validation_error(null_total, "total")
        self.assert_success_response(cleared_notes)
        assert cleared_notes.json()["notes"] is None
        assert cleared_notes.json()["status"] == "DRAFT"

    def test_reject(self, client, auth_headers):
        quote = self.submit_quote(client)

        result = client.patch(f"{self.base_url}/{quote['id']}/reject", headers=auth_headers)

        self.assert_success_response(result)
        assert result.json()["status"] == "REJECTED"

    def test_stats(self, client, auth_headers):
        first = self.submit_quote(client, total=1000)
        self.submit_quote(client, total=2000)
        self.submit_quote(client, total=3000)
        client.patch(f"{self.base_url}/{first['id']}/approve", headers=auth_headers)

        result = client.get(f"{self.base_url}/stats", headers=auth_headers)

        self.assert_success_response(result)
        stats = result.json()
        assert stats["total"] == 3
        assert stats["by_status"]["DRAFT"] == 2
        assert stats["by_status"]["APPROVED"] == 1
        assert stats["by_status"]["CONVERTED"] == 0
        assert stats["total_value"] == 6000
        assert stats["average_value"] == 2000


class TestQuoteConversion(BaseAPITest, APIActions):
    """Test cases for converting approved quotes into projects."""

    base_url = f"{API}/quotes"

    def approved_quote(self, client, headers, **overrides):
        quote = self.submit_quote(client, **overrides)
        client.patch(f"{self.base_url}/{quote['id']}/approve", headers=headers)
        return quote

    def test_convert(self, client, auth_headers, tenant):
        quote = self.approved_quote(client, auth_headers)

        result = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers)

        self.assert_success_response(result, status.HTTP_201_CREATED)
        project = result.json()
        assert project["tenant_id"] == str(tenant.id)
        assert project["name"] == "Bakery Website"
        assert project["status"] == "PLANNING"
        assert project["quoted_hours"] == 40
        assert project["used_hours"] == 0
        assert project["hourly_rate"] == 87.0
        assert project["quotation_data"]["quote_number"] == quote["quote_number"]

        converted = client.get(f"{self.base_url}/{quote['id']}", headers=auth_headers).json()
        assert converted["status"] == "CONVERTED"
        assert converted["project_id"] == project["id"]

    def test_convert_creates_client_from_quote(self, client, auth_headers, db_session, tenant):
        quote = self.approved_quote(client, auth_headers)

        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        created = db_session.query(Client).filter(Client.tenant_id == tenant.id).one()
        assert str(created.id) == project["client_id"]
        assert created.email == "maria@garcia.example.com"
        assert created.company == "Garcia Bakery"

    def test_convert_reuses_client_with_same_email(self, client, auth_headers):
        existing = self.create_client(client, auth_headers, email="maria@garcia.example.com")
        quote = self.approved_quote(client, auth_headers)

        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        assert project["client_id"] == existing["id"]
        assert client.get(f"{API}/clients", headers=auth_headers).json()["total"] == 1

    def test_convert_uses_quote_estimate(self, client, auth_headers):
        quote = self.approved_quote(client, auth_headers, estimated_hours=50)

        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        assert project["quoted_hours"] == 50
        assert project["hourly_rate"] == 69.6

    def test_convert_without_hours(self, client, auth_headers):
        services = [{"id": "seo", "name": "SEO audit", "base_price": 500}]
        quote = self.approved_quote(client, auth_headers, services=services)

        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        assert project["quoted_hours"] == 0
        assert project["hourly_rate"] == 0

    def test_convert_requires_approval(self, client, auth_headers):
        quote = self.submit_quote(client)

        result = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers)

        self.assert_conflict(result)
        assert result.json()["detail"] == "Only approved quotes can be converted to projects"

    def test_convert_twice(self, client, auth_headers):
        quote = self.approved_quote(client, auth_headers)
        client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers)

        again = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers)
        client.patch(f"{self.base_url}/{quote['id']}/approve", headers=auth_headers)
        reapproved = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers)

        self.assert_conflict(again)
        self.assert_conflict(reapproved)
        assert reapproved.json()["detail"] == "Quote has already been converted to project"

    def test_convert_notifies_workflow(self, client, auth_headers, webhook_requests, tenant):
        quote = self.approved_quote(client, auth_headers)

        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        assert [request.url.path for request in webhook_requests] == ["/webhook/project-approved"]
        payload = json.loads(webhook_requests[0].content)
        assert payload["workflow"] == "project-approved"
        assert payload["tenant"] == {"id": str(tenant.id), "type": "ALANIS_WEB_DEV"}
        assert payload["data"]["project"]["id"] == project["id"]
        assert payload["data"]["client"]["company"] == "Garcia Bakery"

    def test_deleting_project_unlinks_quote(self, client, auth_headers):
        quote = self.approved_quote(client, auth_headers)
        project = client.post(f"{self.base_url}/{quote['id']}/convert-to-project", headers=auth_headers).json()

        result = client.delete(f"{API}/projects/{project['id']}", headers=auth_headers)

        assert result.status_code == status.HTTP_204_NO_CONTENT
        assert client.get(f"{self.base_url}/{quote['id']}", headers=auth_headers).json()["project_id"] is None
