from app.api.artists.availability import artist_availability_bp
from app.api.artists.details import artist_details_bp
from app.api.booking.bookings import bookings_bp
from app.api.designs.details import designs_bp
from app.api.studios.admin import studio_admin_bp
from app.api.studios.details import studio_details_bp
from app.routes.auth import auth_bp
from app.routes.catalog import catalog_bp
from app.routes.dashboard import dashboard_bp
from app.routes.favorites import favorites_bp
from app.routes.profiles import profiles_bp
from app.routes.reviews import reviews_bp
from app.routes.search import search_bp
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os

load_dotenv()
from app.config import Config  # noqa: E402
from app.extensions import db  # noqa: E402
from app.scheduler import init_scheduler  # noqa: E402


def create_app(config_overrides=None):
    print("Starting create_app()")
    app = Flask(__name__)
    try:
        app.config.from_object(Config)
        if config_overrides:
            app.config.update(config_overrides)
        print(f"Config loaded successfully ({len(app.config)} items)")

        CORS(app)
        print("CORS initialized")

        db.init_app(app)
        print("Database initialized")

        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host

        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)
        print("Swagger initialized - Access at /api/docs")
        print("Registering blueprints...")

        blueprints = [
            auth_bp,
            profiles_bp,
            catalog_bp,
            designs_bp,
            artist_details_bp,
            artist_availability_bp,
            studio_details_bp,
            studio_admin_bp,
            bookings_bp,
            favorites_bp,
            reviews_bp,
            search_bp,
            dashboard_bp,
        ]

        for bp in blueprints:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} registered")

        print("All blueprints registered successfully")

        @app.route("/")
        def home():
            """
            Root endpoint - API status
            ---
            tags:
              - Utility
            responses:
              200:
                description: API is running
                schema:
                  type: object
                  properties:
                    status:
                      type: string
                    message:
                      type: string
            """
            return {"status": "ok", "message": "InkBook backend is running!"}, 200

        if app.config.get("SCHEDULER_ENABLED") and not app.config.get("TESTING"):
            init_scheduler(app)
        else:
            print("[SCHEDULER] Disabled")

    except Exception as e:
        print(f"Error during app creation: {e}")
        import traceback

        print(f"Full traceback: {traceback.format_exc()}")
        raise

    print("create_app() completed successfully")
    return app


app = create_app()


if __name__ == "__main__":
    # Create a .env containing:
    #       DATABASE_URL=mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/inkbook
    #       SECRET_KEY=...
    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
