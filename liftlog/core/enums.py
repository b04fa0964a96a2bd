"""Shared enums for storage, migration and API."""

from enum import Enum


class Entity(str, Enum):
    """Entity types that are migrated and counted across backends."""

    EXERCISES = "exercises"
    WORKOUTS = "workouts"
    HISTORY = "history"


class BackendKind(str, Enum):
    """Tag identifying a storage backend variant."""

    JSON = "json"  # Legacy file store
    DB = "db"  # Relational store


class WriteMode(str, Enum):
    """Dual-write coordinator mode."""

    PRIMARY_ONLY = "primary_only"
    DUAL_WRITE = "dual_write"  # Mirror mutations to the secondary backend


class WorkoutSource(str, Enum):
    """Where a workout definition came from."""

    CUSTOM = "custom"
    TEMPLATE = "template"


class Units(str, Enum):
    """Measurement system for weights and distances."""

    METRIC = "metric"
    IMPERIAL = "imperial"
