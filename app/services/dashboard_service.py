# app/services/dashboard_service.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.enums import JobStatus, UserRole
from app.models.customer import Customer
from app.models.job import Job
from app.models.user import User


class DashboardService:
    """Headline counters for the dashboard, scoped by the caller's role."""

    def __init__(self, db: Session):
        self.db = db

    def stats(self, user: User) -> dict:
        if user.role is UserRole.Admin:
            return self._admin_stats()
        if user.role is UserRole.ProjectManager:
            return self._pm_stats(user.id)
        return {"activeJobs": 0, "inProduction": 0, "customers": 0, "thisMonth": 0}

    def _live_jobs(self):
        return self.db.query(Job).filter(Job.deleted_at.is_(None))

    def _admin_stats(self) -> dict:
        active_jobs = self._live_jobs().filter(Job.status != JobStatus.Delivered).count()
        in_production = self._live_jobs().filter(Job.status == JobStatus.InProduction).count()
        customers = self.db.query(Customer).filter(Customer.deleted_at.is_(None)).count()

        now = datetime.now()
        month_start = datetime(now.year, now.month, 1)
        month_end = datetime(now.year + 1, 1, 1) if now.month == 12 else datetime(now.year, now.month + 1, 1)
        total = (
            self.db.query(func.coalesce(func.sum(Job.quoted_amount), 0))
            .filter(
                Job.deleted_at.is_(None),
                Job.created_date >= month_start,
                Job.created_date < month_end,
            )
            .scalar()
        )
        return {
            "activeJobs": active_jobs,
            "inProduction": in_production,
            "customers": customers,
            "thisMonth": f"{Decimal(str(total or 0)):,.2f}",
        }

    def _pm_stats(self, user_id: str) -> dict:
        mine = self._live_jobs().filter(Job.project_manager_id == user_id)
        active_jobs = mine.filter(Job.status != JobStatus.Delivered).count()
        in_production = mine.filter(Job.status == JobStatus.InProduction).count()
        customers = (
            self.db.query(func.count(func.distinct(Job.customer_id)))
            .filter(Job.deleted_at.is_(None), Job.project_manager_id == user_id)
            .scalar()
        )
        return {
            "activeJobs": active_jobs,
            "inProduction": in_production,
            "customers": customers or 0,
            "thisMonth": 0,
        }
