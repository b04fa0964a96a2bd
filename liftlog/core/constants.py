"""Application constants."""

# History pagination
DEFAULT_HISTORY_PAGE_SIZE = 20
MAX_HISTORY_PAGE_SIZE = 100

# Workout / exercise listing
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Exercise library
MAX_EXERCISE_NAME_LENGTH = 120
MAX_CATEGORY_LENGTH = 50

# Set intensity scale
MIN_RPE = 0
MAX_RPE = 10

# Legacy file store layout (one JSON array per entity)
LEGACY_FILES = {
    "exercises": "exercises.json",
    "workouts": "workouts.json",
    "history": "history.json",
}

# User settings live beside the entity files; they are not migrated or counted
SETTINGS_FILE = "settings.json"
MAX_USER_ID_LENGTH = 255
