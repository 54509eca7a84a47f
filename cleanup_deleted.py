# cleanup_deleted.py
"""
Permanently remove soft-deleted jobs (with their estimates) and customers.
Freed job numbers can be reused by new jobs.
"""
from app.app_factory import load_config
from app.db.session import Database
from app.services.audit_log_service import AuditLogService
from app.services.customer_service import CustomerService
from app.services.job_service import JobService


def cleanup(database: Database) -> dict:
    db = database.session()
    try:
        audit_log_service = AuditLogService(db)
        job_numbers = JobService(db, audit_log_service).purge_deleted_jobs()
        companies = CustomerService(db, audit_log_service).purge_deleted_customers()
        db.commit()
        return {"jobs": job_numbers, "customers": companies}
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main():
    handle = Database(load_config()["DATABASE_URL"])
    try:
        result = cleanup(handle)
    finally:
        handle.dispose()

    if not result["jobs"] and not result["customers"]:
        print("✨ Nothing to clean up")
        return
    for job_number in result["jobs"]:
        print(f"🗑️  job {job_number} purged, number is free again")
    for company in result["customers"]:
        print(f"🗑️  customer {company} purged")
    print(f"✅ Purged {len(result['jobs'])} job(s) and {len(result['customers'])} customer(s)")


if __name__ == "__main__":
    main()
