from app.db.base import Base
#-------------------import every table so create_all sees it-----------------------
from app.models.user import User  # noqa: F401
from app.models.customer import Customer  # noqa: F401
from app.models.job import Job  # noqa: F401
from app.models.estimate import Estimate, EstimateStructure, EstimatePurchaseItem  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401


def init_db(database):
    Base.metadata.create_all(bind=database.engine)


def drop_db(database):
    Base.metadata.drop_all(bind=database.engine)
