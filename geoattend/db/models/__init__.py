"""Database models."""
from geoattend.db.models.training import Training
from geoattend.db.models.trainee import Trainee
from geoattend.db.models.enrollment import Enrollment
from geoattend.db.models.attendance import Attendance

__all__ = ["Training", "Trainee", "Enrollment", "Attendance"]
