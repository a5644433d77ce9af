# Overview: Shared Flask extension singletons, bound to the app in create_app().

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Session used by the sale engine and reports unless a caller passes its own
db = SQLAlchemy()

# Schema migrations live in backend/migrations
migrate = Migrate()
