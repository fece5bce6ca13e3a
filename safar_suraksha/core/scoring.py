from abc import ABC, abstractmethod
from typing import Sequence

from safar_suraksha.models.zone import ZoneMatch

class SafetyScorer(ABC):
    """Maps containment results to a safety score"""

    @abstractmethod
    def score(self, matches: Sequence[ZoneMatch]) -> int:
        pass

class TwoLevelSafetyScorer(SafetyScorer):
    """Coarse classifier: one score outside every zone, another inside any zone"""

    def __init__(self, safe_score: int = 90, alert_score: int = 50):
        self.safe_score = safe_score
        self.alert_score = alert_score

    def score(self, matches: Sequence[ZoneMatch]) -> int:
        return self.alert_score if matches else self.safe_score
