from app.models.student import Student
from app.models.history import HistoryEntry
from app.models.measurement import MeasurementEntry
from app.models.trainer import Trainer

__all__ = ["Student", "HistoryEntry", "MeasurementEntry", "Trainer"]
