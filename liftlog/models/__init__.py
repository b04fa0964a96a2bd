"""ORM models - import all so Base.metadata is complete for migrations."""

from liftlog.models.exercise import Exercise
from liftlog.models.history import HistoryEntry
from liftlog.models.settings import UserSettings
from liftlog.models.workout import Workout, WorkoutExercise, WorkoutSet

__all__ = [
    "Exercise",
    "HistoryEntry",
    "UserSettings",
    "Workout",
    "WorkoutExercise",
    "WorkoutSet",
]
