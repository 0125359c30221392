"""MindWell core library: persisted state stores and the achievement engine.

Public API re-exports for convenient imports:
    from mindwell import Session, JournalStore, AchievementsEngine, ...
"""

# Workspace, settings & paths
from mindwell.workspace import (
    Settings,
    workspace_root,
    load_settings,
    init_workspace,
    configure_logging,
    get_user_timezone,
    settings_path,
    data_dir,
)

# Errors
from mindwell.errors import (
    MindWellError,
    ValidationError,
    ExternalServiceError,
)

# Models
from mindwell.models import (
    MOODS,
    SELF_CARE_SUGGESTIONS,
    JournalEntry,
    Goal,
    Achievement,
    AnalysisResult,
    MoodPattern,
    InsightsSummary,
    DailyQuote,
)

# Persistence & events
from mindwell.slices import SliceStore
from mindwell.events import EventBus

# Stores
from mindwell.journal import JournalStore, validate_entry
from mindwell.goals import GoalsStore, validate_goal
from mindwell.lock import LockStore, simple_hash

# Achievements
from mindwell.achievements import (
    CATALOG,
    ACHIEVEMENT_IDS,
    AchievementsEngine,
    Snapshot,
    evaluate,
)
from mindwell.orchestrator import Orchestrator
from mindwell.toasts import AsyncioScheduler, ToastPresenter

# AI contract
from mindwell.analysis import (
    AnalysisClient,
    build_entry,
    contains_trigger_phrase,
    parse_analysis,
    parse_insights,
)

# Session
from mindwell.session import Session, SubmitResult
