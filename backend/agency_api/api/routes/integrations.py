"""
Integration API routes.

Exposes explicit invoicing calls (client sync, invoice creation), the weekly
workflow report and connectivity checks for both platforms. These handlers
are plain functions so their blocking HTTP calls run in the threadpool.
"""
import logging
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database.connection import get_db
from ...database.models import Tenant
from ...auth.dependencies import get_current_user, get_tenant_filter, CurrentUser, TenantFilter
from ...integrations.invoice_ninja import InvoiceNinjaClient, InvoiceNinjaError, get_invoice_ninja_client
from ...integrations.n8n import N8nClient, get_n8n_client
from ...services.time_tracking import get_tenant_project
from .clients import get_tenant_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])


def _bad_gateway(error: InvoiceNinjaError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=str(error)
    )


def _connection_status(service: str, connected: bool) -> dict:
    return {
        "service": service,
        "connected": connected,
        "status": "OK" if connected else "ERROR",
    }


# PUBLIC_INTERFACE
@router.post("/invoice-ninja/sync-client/{client_id}",
            summary="Sync client with Invoice Ninja",
            description="Create or update the client on the invoicing platform. Fails with 502 when the platform call fails.")
def sync_client(
    client_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    invoice_ninja: InvoiceNinjaClient = Depends(get_invoice_ninja_client),
    db: Session = Depends(get_db)
):
    client = get_tenant_client(db, tenant_filter, client_id)
    try:
        client = invoice_ninja.sync_client(db, client)
    except InvoiceNinjaError as e:
        raise _bad_gateway(e)

    return {
        "message": "Client synced successfully",
        "invoice_ninja_id": client.invoice_ninja_id,
    }


# PUBLIC_INTERFACE
@router.post("/invoice-ninja/create-invoice/{project_id}",
            summary="Invoice project hours",
            description="Invoice the project's unbilled, billable hours and notify the invoice-created workflow.")
def create_invoice(
    project_id: UUID,
    background_tasks: BackgroundTasks,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    invoice_ninja: InvoiceNinjaClient = Depends(get_invoice_ninja_client),
    n8n: N8nClient = Depends(get_n8n_client),
    db: Session = Depends(get_db)
):
    """
    Create an invoice on the invoicing platform for a project.

    The hours are flagged as billed only when the platform accepts the
    invoice.
    """
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)
    try:
        invoice = invoice_ninja.create_invoice(db, project)
    except InvoiceNinjaError as e:
        raise _bad_gateway(e)

    n8n.notify_invoice_created(project, str(invoice.get("id")))
    background_tasks.add_task(n8n.outbox.dispatch_pending)

    return {"message": "Invoice created successfully", "invoice": invoice}


# PUBLIC_INTERFACE
@router.post("/n8n/weekly-report",
            summary="Send weekly report",
            description="Summarise the last seven days of time tracking and send it to the weekly-report workflow.")
def send_weekly_report(
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    n8n: N8nClient = Depends(get_n8n_client),
    db: Session = Depends(get_db)
):
    tenant = db.query(Tenant).filter(Tenant.id == current_user.tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )

    delivery = n8n.weekly_report(db, tenant)
    background_tasks.add_task(n8n.outbox.dispatch_pending)

    return {"message": "Weekly report queued", "summary": delivery.payload["data"]}


# PUBLIC_INTERFACE
@router.get("/invoice-ninja/test-connection",
           summary="Test Invoice Ninja connection")
def test_invoice_ninja_connection(
    current_user: CurrentUser = Depends(get_current_user),
    invoice_ninja: InvoiceNinjaClient = Depends(get_invoice_ninja_client)
):
    return _connection_status("Invoice Ninja", invoice_ninja.test_connection())


# PUBLIC_INTERFACE
@router.get("/n8n/test-connection",
           summary="Test n8n connection")
def test_n8n_connection(
    current_user: CurrentUser = Depends(get_current_user),
    n8n: N8nClient = Depends(get_n8n_client)
):
    return _connection_status("n8n", n8n.test_connection())


# PUBLIC_INTERFACE
@router.get("/status",
           summary="Integration status",
           description="Connectivity of every integration. Overall status is OK only when all are reachable.")
def integrations_status(
    current_user: CurrentUser = Depends(get_current_user),
    invoice_ninja: InvoiceNinjaClient = Depends(get_invoice_ninja_client),
    n8n: N8nClient = Depends(get_n8n_client)
):
    invoice_ninja_connected = invoice_ninja.test_connection()
    n8n_connected = n8n.test_connection()

    return {
        "integrations": {
            "invoice-ninja": {
                "connected": invoice_ninja_connected,
                "status": "OK" if invoice_ninja_connected else "ERROR",
            },
            "n8n": {
                "connected": n8n_connected,
                "status": "OK" if n8n_connected else "ERROR",
            },
        },
        "overall": "OK" if invoice_ninja_connected and n8n_connected else "PARTIAL",
    }
