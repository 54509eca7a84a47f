# app/db/enums.py
import enum


# User related enums
class UserRole(enum.Enum):
    Admin = "Admin"
    Estimator = "Estimator"
    Drafter = "Drafter"
    ProjectManager = "Project Manager"
    Production = "Production"
    InventoryManager = "Inventory Manager"
    Viewer = "Viewer"


# Job related enums
class JobStatus(enum.Enum):
    """Pipeline stages, in pipeline order."""
    Estimation = "Estimation"
    Drafting = "Drafting"
    PMReview = "PM Review"
    Submitted = "Submitted"
    UnderRevision = "Under Revision"
    Accepted = "Accepted"
    InProduction = "In Production"
    Delivered = "Delivered"


class JobPriority(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


# Estimate related enums
class EstimateStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    revised = "revised"


# Notification related enums
class NotificationType(enum.Enum):
    job_assigned = "job_assigned"
    job_updated = "job_updated"
    job_deleted = "job_deleted"
    job_completed = "job_completed"
    customer_created = "customer_created"
    job_created = "job_created"
    quote_created = "quote_created"
    quote_assigned = "quote_assigned"


# AuditLog related enums
class AuditEntityType(enum.Enum):
    User = "user"
    Customer = "customer"
    Job = "job"
    Estimate = "estimate"


class AuditAction(enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"
    purge = "purge"
    system = "system"
