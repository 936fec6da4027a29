"""
Credit allocation and hazard classification engine for the tutoring portal.
"""

from .config import (
    AllocationEngineConfig, Delivery, LengthCat, Tier, SourceType, ExpiryPolicy,
    LotState, SncMode, HazardType, HazardSeverity,
)
from .contracts import ContractViolation, prepare_open_lots
from .engine import CreditEngine, configure_logging
from .hazards import HazardClassifier, sort_hazards_for_display
from .matcher import MatchPool, RestrictionMatcher
from .models import (
    AllocationPlan, AllocationStep, CreditLot, Hazard, Lesson, LessonPreview,
    SncHistoryRecord, SncResolution, StudentSncStatus,
)
from .planner import AllocationPlanner
from .schemas import (
    CreditLotIn, LessonIn, SncHistoryRecordIn,
    AllocationStepResponse, AllocationPlanResponse, HazardResponse, LessonPreviewResponse,
    SncResolutionResponse, StudentSncStatusResponse, CreditSnapshotResponse,
)
from .snc import SncAllowanceResolver, compute_student_snc_status

__version__ = "0.1.0"
