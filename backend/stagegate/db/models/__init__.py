"""Re-export all models so Base.metadata sees them."""

from stagegate.db.models.project_graph import ProjectGraph
from stagegate.db.models.stage import StageRecord
from stagegate.db.models.transition_record import TransitionHistory

__all__ = [
    "ProjectGraph",
    "StageRecord",
    "TransitionHistory",
]
