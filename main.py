from bookdesk.api.booking.appointments import appointments_bp
from bookdesk.api.payments.sales import sales_bp
from bookdesk.api.employee.staff import staff_bp
from bookdesk.api.catalog.services import services_bp
from bookdesk.api.catalog.categories import categories_bp
from bookdesk.api.companies.companies import companies_bp
from bookdesk.routes.auth import auth_bp
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os

load_dotenv()
from bookdesk.config import Config  # noqa: E402
from bookdesk.extensions import db  # noqa: E402
from bookdesk.utils.errors import register_error_handlers  # noqa: E402


def create_app(test_config=None):
    print("Starting create_app()")
    app = Flask(__name__)
    try:
        app.config.from_object(Config)
        if test_config:
            app.config.update(test_config)
        print(f"Config loaded: {len(app.config)} items")

        app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

        CORS(app, origins=app.config.get("CORS_ORIGINS", "*"))
        db.init_app(app)
        print("Database initialized")

        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host
        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)
        print("Swagger initialized - Access at /api/docs")

        register_error_handlers(app)

        blueprints = [
            auth_bp,
            companies_bp,
            categories_bp,
            services_bp,
            staff_bp,
            appointments_bp,
            sales_bp,
        ]
        for bp in blueprints:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} registered")

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
            """
            return {"success": True, "status": "ok", "message": "Backend is running!"}, 200

        print(f"Total routes registered: {len(list(app.url_map.iter_rules()))}")

    except Exception as e:
        print(f"Error during app creation: {e}")
        raise

    print("create_app() completed successfully")
    return app


app = create_app()


if __name__ == "__main__":
    # Create a .env containing:
    #       MYSQL_PUBLIC_URL=mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/bookdesk
    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
