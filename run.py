# run.py
"""
Development / intranet server entry point.
For production, point a WSGI server at ``app.app_factory:create_app()``.
"""
import os

from app.app_factory import create_app
from app.db.auto_init import auto_init


def main():
    # 1. create the app (config, storage handle, dispatcher)
    app = create_app(os.getenv("APP_ENV", "development"))
    database = app.extensions["database"]
    print(f"📦 Using database: {database.url}")

    # 2. schema + default admin
    auto_init(database, bcrypt_rounds=app.config["BCRYPT_ROUNDS"])

    # 3. serve
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "0") == "1"
    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
