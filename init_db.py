from bookdesk.extensions import db
from bookdesk.models import Base
from main import create_app

app = create_app()

with app.app_context():
    Base.metadata.create_all(bind=db.engine)

print("Database tables created successfully!")
