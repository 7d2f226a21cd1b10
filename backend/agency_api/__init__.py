"""
Multi-tenant agency backend: clients, projects, quotes, time tracking,
contact forms and invoicing/workflow integrations.
"""
__version__ = "1.0.0"
