"""SmallBiz models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin
from .business import Business, BusinessProfile
from .client import Client
from .job import Job, JobStage
from .invoice import Invoice, LineItem
from .site import PublishedSite, PublishStatus

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "TenantMixin",
    "Business",
    "BusinessProfile",
    "Client",
    "Job",
    "JobStage",
    "Invoice",
    "LineItem",
    "PublishedSite",
    "PublishStatus",
]
