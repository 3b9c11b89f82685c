from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class RunStatus(str, enum.Enum):
    """Ingestion run status"""
    SUCCESS = "success"
    PARTIAL = "partial_success"


class OutcomeStatus(str, enum.Enum):
    """Per-report processing outcome"""
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"
