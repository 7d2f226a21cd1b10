"""
Pydantic schemas for API request/response validation.

Provides data models for authentication, tenants, clients and projects,
quotes, time tracking and contact forms.
"""
