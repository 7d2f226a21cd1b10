"""
Test package for the agency backend application.

This package contains test suites for:
- Authentication, token refresh and route guards
- Multi-tenant data isolation
- Clients, projects, quotes and contact forms
- Time tracking and project hour reports
- Workflow webhooks and invoicing
"""
