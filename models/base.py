from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class SyncMode(str, enum.Enum):
    """How records are written to the destination"""
    REPLACE = "replace"  # delete existing rows, reset columns, insert fresh
    APPEND = "append"    # add rows and missing columns only


class TriggerType(str, enum.Enum):
    """What causes a job to run"""
    MANUAL = "manual"
    SCHEDULE = "schedule"
    FILE_WATCH = "file_watch"


class SyncStatus(str, enum.Enum):
    """Sync run / last job status"""
    NONE = ""
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class FieldType(str, enum.Enum):
    """Column types carried by a record schema"""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
