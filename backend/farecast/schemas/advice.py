import enum
from typing import Optional

from farecast.schemas.base import ApiModel
from farecast.schemas.flight import FlightOffer


class Action(str, enum.Enum):
    BOOK = "BOOK"
    WAIT = "WAIT"
    NO_SIGNAL = "NO_SIGNAL"

    @property
    def is_opinionated(self) -> bool:
        return self is not Action.NO_SIGNAL


class Trend(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"
    UNKNOWN = "UNKNOWN"


class SignalResult(ApiModel):
    action: Action
    confidence: int
    reason: str


class SeasonalSignal(SignalResult):
    trend: Trend = Trend.UNKNOWN
    far_avg: Optional[float] = None
    near_avg: Optional[float] = None
    rel_change: Optional[float] = None
    points_used: int = 0


class AdviceResult(ApiModel):
    action: Action
    confidence: int
    explanation: str
    heuristic: SignalResult
    seasonal: SeasonalSignal
    best_offer: Optional[FlightOffer] = None
    best_deal_summary: str
