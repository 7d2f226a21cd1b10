"""
Workflow-automation notifications.

Builds the webhook payloads for project and time tracking events and queues
them on the outbox. Payloads are built while the request's session is still
open so dispatch needs no database access.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from ..database.models import Project, Tenant, TenantType, TimeEntry
from .outbox import WebhookDelivery, WebhookOutbox, get_outbox

logger = logging.getLogger(__name__)

LOW_HOURS_THRESHOLD = 10
LOW_HOURS_PERCENTAGE = 20
PING_TIMEOUT_SECONDS = 5.0


def _client_summary(project: Project) -> Dict[str, Any]:
    return {
        "id": str(project.client.id),
        "name": project.client.name,
        "email": project.client.email,
    }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class N8nClient:
    """Queues workflow notifications on a `WebhookOutbox`."""

    def __init__(self, outbox: WebhookOutbox):
        self.outbox = outbox

    @staticmethod
    def build_payload(
        workflow: str,
        data: Dict[str, Any],
        tenant_id,
        tenant_type: Optional[TenantType] = None,
    ) -> Dict[str, Any]:
        """
        Wrap workflow data in the envelope every workflow receives.

        Args:
            workflow: Workflow name
            data: Workflow-specific data
            tenant_id: Owning tenant
            tenant_type: Tenant brand, when known

        Returns:
            Dict[str, Any]: `{workflow, tenant: {id, type}, timestamp, data}`
        """
        return {
            "workflow": workflow,
            "tenant": {
                "id": str(tenant_id),
                "type": tenant_type.value if tenant_type else None,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }

    # PUBLIC_INTERFACE
    def trigger(
        self,
        workflow: str,
        data: Dict[str, Any],
        tenant_id,
        tenant_type: Optional[TenantType] = None,
    ) -> WebhookDelivery:
        """Queue a workflow run."""
        logger.info(f"Queueing workflow {workflow} for tenant {tenant_id}")
        payload = self.build_payload(workflow, data, tenant_id, tenant_type)
        return self.outbox.enqueue(workflow, payload)

    # PUBLIC_INTERFACE
    def notify_low_hours(self, project: Project) -> Optional[WebhookDelivery]:
        """
        Queue a low-hours alert when at most 20% of the quoted hours remain.

        Projects without quoted hours never alert.
        """
        quoted = project.quoted_hours or 0
        if quoted <= 0:
            return None

        remaining = quoted - (project.used_hours or 0)
        remaining_percentage = remaining / quoted * 100
        if remaining_percentage > LOW_HOURS_PERCENTAGE:
            return None

        logger.info(f"Low hours on project {project.name}: {remaining} remaining")
        return self.trigger(
            "low-hours-alert",
            {
                "project": {
                    "id": str(project.id),
                    "name": project.name,
                    "remaining_hours": remaining,
                    "remaining_percentage": round(remaining_percentage),
                    "quoted_hours": quoted,
                    "used_hours": project.used_hours,
                },
                "client": _client_summary(project),
            },
            project.tenant_id,
            project.tenant.type,
        )

    # PUBLIC_INTERFACE
    def notify_time_tracked(self, entry: TimeEntry, project: Project) -> List[WebhookDelivery]:
        """
        Queue the time-tracked workflow, plus a low-hours alert when fewer
        than 10 hours remain.

        Args:
            entry: The new time entry
            project: Its project, with used hours already recomputed

        Returns:
            List[WebhookDelivery]: Queued deliveries
        """
        remaining = (project.quoted_hours or 0) - (project.used_hours or 0)
        deliveries = [self.trigger(
            "time-tracked",
            {
                "time_entry": {
                    "id": str(entry.id),
                    "description": entry.description,
                    "hours": entry.hours,
                    "date": entry.date.isoformat(),
                },
                "project": {
                    "id": str(project.id),
                    "name": project.name,
                    "remaining_hours": remaining,
                    "used_hours": project.used_hours,
                    "quoted_hours": project.quoted_hours,
                },
                "client": _client_summary(project),
            },
            project.tenant_id,
            project.tenant.type,
        )]

        if remaining < LOW_HOURS_THRESHOLD:
            alert = self.notify_low_hours(project)
            if alert:
                deliveries.append(alert)
        return deliveries

    # PUBLIC_INTERFACE
    def notify_project_approved(self, project: Project) -> WebhookDelivery:
        """Queue the project-approved workflow for a project created from a quote."""
        return self.trigger(
            "project-approved",
            {
                "project": {
                    "id": str(project.id),
                    "name": project.name,
                    "description": project.description,
                    "quoted_hours": project.quoted_hours,
                    "hourly_rate": float(project.hourly_rate or 0),
                    "start_date": _isoformat(project.start_date),
                    "end_date": _isoformat(project.end_date),
                },
                "client": dict(_client_summary(project), company=project.client.company),
            },
            project.tenant_id,
            project.tenant.type,
        )

    # PUBLIC_INTERFACE
    def notify_invoice_created(self, project: Project, invoice_id: str) -> WebhookDelivery:
        """Queue the invoice-created workflow."""
        return self.trigger(
            "invoice-created",
            {
                "project": {"id": str(project.id), "name": project.name},
                "client": _client_summary(project),
                "invoice": {"id": invoice_id},
            },
            project.tenant_id,
            project.tenant.type,
        )

    @staticmethod
    def weekly_summary(entries: List[TimeEntry]) -> Dict[str, Any]:
        """
        Summarise a week of time entries.

        Returns:
            Dict[str, Any]: Totals, the five busiest projects and per-user activity
        """
        project_hours: Dict[str, Dict[str, Any]] = {}
        team: Dict[str, Dict[str, Any]] = {}
        team_projects = defaultdict(set)
        clients = set()

        for entry in entries:
            project = entry.project
            clients.add(project.client_id)

            key = str(project.id)
            if key not in project_hours:
                project_hours[key] = {"name": project.name, "hours": 0.0, "client": project.client.name}
            project_hours[key]["hours"] += entry.hours

            user_key = str(entry.user_id)
            if user_key not in team:
                team[user_key] = {
                    "user_name": f"{entry.user.first_name} {entry.user.last_name}",
                    "hours": 0.0,
                }
            team[user_key]["hours"] += entry.hours
            team_projects[user_key].add(key)

        top_projects = sorted(project_hours.values(), key=lambda p: p["hours"], reverse=True)[:5]
        team_activity = [
            dict(member, projects=len(team_projects[user_key]))
            for user_key, member in team.items()
        ]

        return {
            "total_hours": sum(entry.hours for entry in entries),
            "total_projects": len(project_hours),
            "total_clients": len(clients),
            "top_projects": top_projects,
            "team_activity": team_activity,
        }

    # PUBLIC_INTERFACE
    def weekly_report(self, db: Session, tenant: Tenant, today: Optional[date] = None) -> WebhookDelivery:
        """
        Queue the weekly-report workflow covering the last seven days.

        Args:
            db: Database session
            tenant: Tenant to report on
            today: Reference day, defaults to today (UTC)

        Returns:
            WebhookDelivery: Queued delivery
        """
        today = today or datetime.now(timezone.utc).date()
        since = today - timedelta(days=7)
        entries = db.query(TimeEntry).join(Project).filter(
            Project.tenant_id == tenant.id,
            TimeEntry.date >= since
        ).all()

        summary = self.weekly_summary(entries)
        logger.info(f"Weekly report queued for tenant {tenant.id}")
        return self.trigger("weekly-report", summary, tenant.id, tenant.type)

    # PUBLIC_INTERFACE
    def test_connection(self) -> bool:
        """Check that the workflow endpoint answers `GET /ping`."""
        if not self.outbox.base_url:
            return False
        try:
            with self.outbox.client(timeout=PING_TIMEOUT_SECONDS) as client:
                response = client.get(f"{self.outbox.base_url}/ping")
                response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error connecting to n8n: {e}")
            return False


# PUBLIC_INTERFACE
def get_n8n_client(outbox: WebhookOutbox = Depends(get_outbox)) -> N8nClient:
    """Dependency providing a notifier bound to the shared outbox."""
    return N8nClient(outbox)
