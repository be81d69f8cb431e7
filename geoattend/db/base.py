"""Database base class and model imports."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here for Alembic to detect them
from geoattend.db.models.training import Training  # noqa: F401, E402
from geoattend.db.models.trainee import Trainee  # noqa: F401, E402
from geoattend.db.models.enrollment import Enrollment  # noqa: F401, E402
from geoattend.db.models.attendance import Attendance  # noqa: F401, E402
