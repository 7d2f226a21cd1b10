"""
Invoicing platform client.

Keeps clients in sync with the invoicing platform and turns a project's
unbilled, billable hours into an invoice.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database.models import Client, Project, SyncStatus, TimeEntry

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY_ID = "840"
DEFAULT_TASK_NAME = "General Development"


class InvoiceNinjaError(Exception):
    """Raised when the invoicing platform rejects or cannot serve a request."""


def group_time_entries(entries: List[TimeEntry]) -> List[Dict[str, Any]]:
    """
    Group time entries into invoice lines.

    Entries sharing a task title (or "General Development" without a task)
    and a description become one line with their hours summed. Lines keep
    the order in which their first entry appears.

    Args:
        entries: Time entries to bill

    Returns:
        List[Dict[str, Any]]: `{task_name, description, hours}` per line
    """
    grouped: Dict[tuple, Dict[str, Any]] = {}
    for entry in entries:
        task_name = entry.task.title if entry.task else DEFAULT_TASK_NAME
        key = (task_name, entry.description)
        if key not in grouped:
            grouped[key] = {"task_name": task_name, "description": entry.description, "hours": 0.0}
        grouped[key]["hours"] += entry.hours
    return list(grouped.values())


class InvoiceNinjaClient:
    """Bearer-authenticated client for the invoicing platform's REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    @staticmethod
    def client_payload(client: Client) -> Dict[str, Any]:
        """Map a client onto the invoicing platform's client fields."""
        address = client.address or {}
        return {
            "name": client.name,
            "email": client.email,
            "phone": client.phone,
            "vat_number": client.tax_id,
            "address1": address.get("street"),
            "city": address.get("city"),
            "state": address.get("state"),
            "postal_code": address.get("zip_code"),
            "country_id": DEFAULT_COUNTRY_ID,
            "custom_value1": str(client.id),
            "custom_value2": str(client.tenant_id),
        }

    def _upsert_client(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            with self._client() as http:
                search = http.get("/api/v1/clients", params={"custom_value1": payload["custom_value1"]})
                search.raise_for_status()
                existing = (search.json().get("data") or [None])[0]

                if existing:
                    response = http.put(f"/api/v1/clients/{existing['id']}", json=payload)
                else:
                    response = http.post("/api/v1/clients", json=payload)
                response.raise_for_status()
                return response.json()["data"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise InvoiceNinjaError(f"Error creating or updating client: {e}") from e

    # PUBLIC_INTERFACE
    def sync_client(self, db: Session, client: Client) -> Client:
        """
        Create or update a client on the invoicing platform.

        The remote client is looked up by our client id; a match is updated,
        otherwise a new one is created. On failure the client is marked
        ERROR and the error is re-raised.

        Args:
            db: Database session
            client: Client to sync

        Returns:
            Client: The client with its remote id and sync status stored

        Raises:
            InvoiceNinjaError: If the platform call fails
        """
        logger.info(f"Syncing client {client.id} with Invoice Ninja")
        try:
            remote = self._upsert_client(self.client_payload(client))
        except InvoiceNinjaError:
            logger.error(f"Error syncing client {client.id}", exc_info=True)
            client.sync_status = SyncStatus.ERROR
            db.commit()
            raise

        client.invoice_ninja_id = str(remote["id"])
        client.sync_status = SyncStatus.SYNCED
        client.last_sync_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(client)

        logger.info(f"Client {client.id} synced as {client.invoice_ninja_id}")
        return client

    # PUBLIC_INTERFACE
    def create_invoice(self, db: Session, project: Project) -> Dict[str, Any]:
        """
        Invoice a project's unbilled, billable hours.

        Syncs the client first when it has no remote id. The billed entries
        are flagged only after the platform accepts the invoice.

        Args:
            db: Database session
            project: Project to invoice

        Returns:
            Dict[str, Any]: The invoice as returned by the platform

        Raises:
            InvoiceNinjaError: If syncing or invoice creation fails
        """
        client = project.client
        if not client.invoice_ninja_id:
            logger.info(f"Client {client.id} not synced yet, syncing before invoicing")
            self.sync_client(db, client)

        entries = db.query(TimeEntry).filter(
            TimeEntry.project_id == project.id,
            TimeEntry.billable == True,
            TimeEntry.billed == False
        ).order_by(TimeEntry.date, TimeEntry.created_at).all()

        hourly_rate = float(project.hourly_rate or 0)
        invoice_data = {
            "client_id": client.invoice_ninja_id,
            "line_items": [
                {
                    "product_key": line["task_name"],
                    "notes": line["description"],
                    "quantity": line["hours"],
                    "cost": hourly_rate,
                }
                for line in group_time_entries(entries)
            ],
            "custom_value1": str(project.id),
            "custom_value2": str(project.tenant_id),
        }

        try:
            with self._client() as http:
                response = http.post("/api/v1/invoices", json=invoice_data)
                response.raise_for_status()
                invoice = response.json()["data"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Error creating invoice for project {project.id}: {e}")
            raise InvoiceNinjaError(f"Error creating invoice: {e}") from e

        for entry in entries:
            entry.billed = True
        db.commit()

        logger.info(f"Invoice {invoice.get('id')} created for project {project.id}")
        return invoice

    # PUBLIC_INTERFACE
    def test_connection(self) -> bool:
        """Check that the platform answers `GET /api/v1/ping`."""
        if not self.base_url:
            return False
        try:
            with self._client() as http:
                http.get("/api/v1/ping").raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error connecting to Invoice Ninja: {e}")
            return False


# PUBLIC_INTERFACE
def get_invoice_ninja_client() -> InvoiceNinjaClient:
    """Dependency providing a client configured from settings."""
    settings = get_settings()
    return InvoiceNinjaClient(
        base_url=settings.invoice_ninja_url,
        api_key=settings.invoice_ninja_api_key,
        timeout=settings.integration_timeout_seconds,
    )
