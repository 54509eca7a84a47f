# app/services/user_service.py
from uuid import uuid4
from typing import List, Optional
import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.enums import AuditEntityType, UserRole
from app.errors import Conflict, Forbidden, NotFound, Unauthorized
from app.logger import get_logger
from app.models.user import User
from app.services.audit_log_service import AuditLogService

logger = get_logger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12


class UserService:
    """
    Staff accounts.
    Provides:
    - creation (email unique, case-insensitive)
    - authentication
    - lookup and listing
    - profile / role / password maintenance
    - deactivation (users are never hard-deleted)

    Role checks for *who* may call these live in the route layer.
    """

    def __init__(
        self,
        db: Session,
        audit_log_service: Optional[AuditLogService] = None,
        *,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self.db = db
        self.audit_log_service = audit_log_service or AuditLogService(db)
        self.bcrypt_rounds = bcrypt_rounds

    # ======================================================
    # 🔐 Internal helpers
    # ======================================================

    def _hash_password(self, password: str) -> str:
        '''Hash a password using bcrypt'''
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self.bcrypt_rounds),
        ).decode("utf-8")

    def _verify_password(self, password: str, password_hash: str) -> bool:
        '''verify a password against its hash'''
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    def _assert_email_free(self, email: str, *, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(User.id).filter(User.email == email.lower())
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise Conflict("User with this email already exists")

    # ======================================================
    # 👤 User CRUD
    # ======================================================

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: UserRole,
        operator_id: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        :param name: Display name
        :type name: str
        :param email: Login email, compared case-insensitively
        :type email: str
        :param password: Plaintext password (policy checked at the boundary)
        :type password: str
        :param role: One of the seven roles
        :type role: UserRole
        :param operator_id: Admin creating the account, None for seed scripts
        :type operator_id: Optional[str]
        """
        email = email.strip().lower()
        self._assert_email_free(email)

        user = User(
            id=str(uuid4()),
            name=name,
            email=email,
            password_hash=self._hash_password(password),
            role=role,
            is_active=True,
        )

        self.db.add(user)
        try:
            with self.db.begin_nested():
                self.db.flush()
        except IntegrityError:
            raise Conflict("User with this email already exists") from None

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.User,
            entity_id=user.id,
            operator_id=operator_id or user.id,
        )
        logger.info(f"User created: {user.email} ({user.role.value})")
        return user

    def authenticate(
        self,
        *,
        email: str,
        password: str,
    ) -> User:
        """
        Authenticate user by email + password.
        Returns User if successful.

        :param email: Login email
        :type email: str
        :param password: Plaintext password
        :type password: str
        """

        user = self.get_user_by_email(email)

        if not user or not self._verify_password(password, user.password_hash):
            raise Unauthorized("Invalid email or password")

        if not user.is_active:
            raise Forbidden("User account is deactivated")

        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    def require_user(self, user_id: str) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def list_users(self, *, role: Optional[UserRole] = None, active_only: bool = True) -> List[User]:
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.name).all()

    def list_active_by_role(self, role: UserRole) -> List[User]:
        return self.list_users(role=role, active_only=True)

    def update_user(
        self,
        *,
        user_id: str,
        operator_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        password: Optional[str] = None,
    ) -> User:
        """
        Update profile fields; None leaves a field unchanged.

        :param user_id: ID of the user to update
        :type user_id: str
        :param operator_id: ID of the admin making the change
        :type operator_id: str
        """
        user = self.require_user(user_id)

        if email is not None and email != user.email:
            self._assert_email_free(email, exclude_id=user.id)

        changes = {"name": name, "email": email, "role": role, "is_active": is_active}
        for field, value in changes.items():
            if value is None:
                continue
            before = getattr(user, field)
            if before == value:
                continue
            setattr(user, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.User,
                entity_id=user.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=operator_id,
            )

        if password:
            user.password_hash = self._hash_password(password)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.User,
                entity_id=user.id,
                changed_attribute="password",
                before_value=None,
                after_value=None,
                operator_id=operator_id,
            )

        self.db.flush()
        return user

    # ======================================================
    # 🔁 Account maintenance
    # ======================================================

    def reset_password(
        self,
        *,
        user_id: str,
        new_password: str,
    ) -> None:
        """
        Reset password directly (admin or seed script flow).

        :param user_id: ID of the user to reset password for
        :type user_id: str
        :param new_password: New plaintext password
        :type new_password: str
        """

        user = self.require_user(user_id)
        user.password_hash = self._hash_password(new_password)
        self.db.flush()

    def deactivate_user(self, *, user_id: str, operator_id: str) -> None:
        """
        Deactivate (soft delete) user.

        :param user_id: ID of the user to deactivate
        :type user_id: str
        """
        self.update_user(user_id=user_id, operator_id=operator_id, is_active=False)
