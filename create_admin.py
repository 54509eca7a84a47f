# create_admin.py
"""
Seed one account per role (development / manual maintenance only).
Existing emails are skipped, so the script can be re-run safely.
"""
from app.app_factory import load_config
from app.db.enums import UserRole
from app.db.init_db import init_db
from app.db.session import Database
from app.services.user_service import UserService

SEED_USERS = [
    {"name": "Administrator", "email": "admin@precast.local", "password": "Admin123!", "role": UserRole.Admin},
    {"name": "Erin Estimator", "email": "estimator@precast.local", "password": "Estimator123", "role": UserRole.Estimator},
    {"name": "Dana Drafter", "email": "drafter@precast.local", "password": "Drafter123", "role": UserRole.Drafter},
    {"name": "Sam Manager", "email": "pm@precast.local", "password": "Manager123", "role": UserRole.ProjectManager},
    {"name": "Pat Production", "email": "production@precast.local", "password": "Production123", "role": UserRole.Production},
    {"name": "Ivy Inventory", "email": "inventory@precast.local", "password": "Inventory123", "role": UserRole.InventoryManager},
    {"name": "Vic Viewer", "email": "viewer@precast.local", "password": "Viewer123", "role": UserRole.Viewer},
]


def create_admin(database: Database, *, bcrypt_rounds: int = 12) -> int:
    db = database.session()
    created = 0
    try:
        user_service = UserService(db, bcrypt_rounds=bcrypt_rounds)

        for u in SEED_USERS:
            if user_service.get_user_by_email(u["email"]):
                print(f"⚠️ {u['email']} already exists, skipped")
                continue
            user_service.create_user(**u)
            created += 1

        db.commit()
        print(f"✅ Seed complete: {created} user(s) created")
        return created

    except Exception as e:
        db.rollback()
        print(f"❌ Seed failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    config = load_config()
    handle = Database(config["DATABASE_URL"])
    try:
        init_db(handle)
        create_admin(handle, bcrypt_rounds=config["BCRYPT_ROUNDS"])
    finally:
        handle.dispose()
