"""FirstBites: derived achievement, streak and allergen state from infant feeding logs."""

__version__ = "0.1.0"

# Core exports
from firstbites.core.models import (
    FeedingEvent,
    Food,
    Criterion,
    CriterionKind,
    Award,
    ProgressReport,
    StreakReport,
    AllergenStatus,
)
from firstbites.core.interfaces import (
    SnapshotAdapter,
    AwardStore,
    OverrideStore,
    CelebrationSink,
)
from firstbites.core.catalog import FoodCatalog, CriterionCatalog
from firstbites.core.evaluator import CriteriaEvaluator, EvaluationContext
from firstbites.core.ledger import AwardLedger, AwardOutcome, InMemoryAwardStore
from firstbites.core.allergens import AllergenTracker, InMemoryOverrideStore
from firstbites.core.engine import FeedingEngine, DerivedState
from firstbites.core.registry import AdapterRegistry
from firstbites.core.settings import EngineSettings, load_settings

__all__ = [
    "FeedingEvent",
    "Food",
    "Criterion",
    "CriterionKind",
    "Award",
    "ProgressReport",
    "StreakReport",
    "AllergenStatus",
    "SnapshotAdapter",
    "AwardStore",
    "OverrideStore",
    "CelebrationSink",
    "FoodCatalog",
    "CriterionCatalog",
    "CriteriaEvaluator",
    "EvaluationContext",
    "AwardLedger",
    "AwardOutcome",
    "InMemoryAwardStore",
    "AllergenTracker",
    "InMemoryOverrideStore",
    "FeedingEngine",
    "DerivedState",
    "AdapterRegistry",
    "EngineSettings",
    "load_settings",
]
