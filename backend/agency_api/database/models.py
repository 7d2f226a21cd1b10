"""
SQLAlchemy database models for the agency backend.

Defines the tables for tenants, users, refresh tokens, clients, projects,
tasks, time entries, quotes with their numbering counter, and contact forms.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, Text, Numeric, Float,
    ForeignKey, JSON, UniqueConstraint, Index, Enum, UUID
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantType(str, enum.Enum):
    """Brands served by the platform."""
    ALANIS_WEB_DEV = "ALANIS_WEB_DEV"
    CHERRY_POP_DESIGN = "CHERRY_POP_DESIGN"


class UserRole(str, enum.Enum):
    """User roles within a tenant."""
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class SyncStatus(str, enum.Enum):
    """Synchronisation state of a client with the invoicing platform."""
    PENDING = "PENDING"
    SYNCED = "SYNCED"
    ERROR = "ERROR"


class ProjectStatus(str, enum.Enum):
    """Project status values."""
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class QuoteStatus(str, enum.Enum):
    """Quote lifecycle states."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"


class ContactFormStatus(str, enum.Enum):
    """Contact form triage states."""
    PENDING = "PENDING"
    RESPONDED = "RESPONDED"
    SPAM = "SPAM"
    ARCHIVED = "ARCHIVED"


class Tenant(Base):
    """Tenant model for multi-tenancy support."""
    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    type = Column(Enum(TenantType), nullable=False)
    domain = Column(String(255), nullable=True)
    settings = Column(JSON, nullable=False, default=dict)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
    clients = relationship("Client", back_populates="tenant", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="tenant", cascade="all, delete-orphan")
    quotes = relationship("Quote", back_populates="tenant", cascade="all, delete-orphan")
    contact_forms = relationship("ContactForm", back_populates="tenant", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug='{self.slug}')>"


class User(Base):
    """User model with tenant association."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="users")
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")
    time_entries = relationship("TimeEntry", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_user_tenant', 'tenant_id'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', tenant_id={self.tenant_id})>"


class RefreshToken(Base):
    """Server-side record backing a refresh token."""
    __tablename__ = "refresh_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    token = Column(Text, nullable=False, default="")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('idx_refresh_token_user', 'user_id'),
    )

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"


class Client(Base):
    """Client model for project management and invoicing."""
    __tablename__ = "clients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    tax_id = Column(String(100), nullable=True)
    address = Column(JSON, nullable=True)
    invoice_ninja_id = Column(String(100), nullable=True)
    sync_status = Column(Enum(SyncStatus), nullable=False, default=SyncStatus.PENDING)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="clients")
    projects = relationship("Project", back_populates="client", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_client_tenant_email', 'tenant_id', 'email'),
    )

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}', tenant_id={self.tenant_id})>"


class Project(Base):
    """Project model; used_hours is the sum of its time entries."""
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.PLANNING)
    quoted_hours = Column(Float, nullable=False, default=0)
    used_hours = Column(Float, nullable=False, default=0)
    hourly_rate = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    quotation_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="projects")
    client = relationship("Client", back_populates="projects")
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    time_entries = relationship("TimeEntry", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_project_tenant_client', 'tenant_id', 'client_id'),
        Index('idx_project_status', 'status'),
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', client_id={self.client_id})>"


class Task(Base):
    """Unit of work inside a project; groups invoice lines."""
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    project = relationship("Project", back_populates="tasks")
    time_entries = relationship("TimeEntry", back_populates="task")

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', project_id={self.project_id})>"


class TimeEntry(Base):
    """Hours logged by a user against a project."""
    __tablename__ = "time_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=False)
    hours = Column(Float, nullable=False)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    hourly_rate = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    billable = Column(Boolean, nullable=False, default=True)
    billed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="time_entries")
    user = relationship("User", back_populates="time_entries")
    task = relationship("Task", back_populates="time_entries")

    __table_args__ = (
        Index('idx_time_entry_project', 'project_id'),
        Index('idx_time_entry_user_date', 'user_id', 'date'),
    )

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, user_id={self.user_id}, project_id={self.project_id})>"


class Quote(Base):
    """Priced proposal submitted by or for a prospective client."""
    __tablename__ = "quotes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    quote_number = Column(String(32), nullable=False)
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(50), nullable=True)
    client_company = Column(String(255), nullable=True)
    project_name = Column(String(255), nullable=False)
    project_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    services = Column(JSON, nullable=False, default=list)
    subtotal = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    tax = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    discount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    total = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    estimated_hours = Column(Float, nullable=True)
    delivery_days = Column(Integer, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    extra_metadata = Column("metadata", JSON, nullable=True)
    status = Column(Enum(QuoteStatus), nullable=False, default=QuoteStatus.DRAFT)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    tenant = relationship("Tenant", back_populates="quotes")
    project = relationship("Project")

    __table_args__ = (
        UniqueConstraint('tenant_id', 'quote_number', name='uq_quote_number_per_tenant'),
        Index('idx_quote_tenant_status', 'tenant_id', 'status'),
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, quote_number='{self.quote_number}', tenant_id={self.tenant_id})>"


class QuoteSequence(Base):
    """Per-tenant, per-year counter behind quote numbers."""
    __tablename__ = "quote_sequences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    year = Column(Integer, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'year', name='uq_quote_sequence_tenant_year'),
    )

    def __repr__(self):
        return f"<QuoteSequence(tenant_id={self.tenant_id}, year={self.year}, last_value={self.last_value})>"


class ContactForm(Base):
    """Inbound contact form submission."""
    __tablename__ = "contact_forms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    source = Column(String(100), nullable=True)
    status = Column(Enum(ContactFormStatus), nullable=False, default=ContactFormStatus.PENDING)
    response = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    responded_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    tenant = relationship("Tenant", back_populates="contact_forms")

    __table_args__ = (
        Index('idx_contact_form_tenant_status', 'tenant_id', 'status'),
    )

    def __repr__(self):
        return f"<ContactForm(id={self.id}, email='{self.email}', tenant_id={self.tenant_id})>"
