"""
Combine the live-search heuristic with the seasonal trend into one advice.

Agreement boosts confidence, disagreement softens it and follows the
heuristic (it reflects the search the user is looking at right now).
"""
from typing import Optional

from farecast.schemas.advice import Action, AdviceResult, SeasonalSignal, SignalResult
from farecast.schemas.flight import FlightOffer

AGREE_BOOK_BONUS = 10
AGREE_BOOK_CAP = 95
AGREE_WAIT_BONUS = 5
AGREE_WAIT_CAP = 90
DISAGREE_PENALTY = 10
NEUTRAL_CONFIDENCE = 40
MAX_CONFIDENCE = AGREE_BOOK_CAP


def _mean_confidence(a: int, b: int) -> int:
    # round half up
    return int((a + b) / 2 + 0.5)


def _clamp(value: int) -> int:
    return max(0, min(MAX_CONFIDENCE, int(value)))


def best_deal_summary(offer: Optional[FlightOffer]) -> str:
    if offer is None:
        return "No best deal identified yet."
    stops = "non-stop" if offer.nonstop else f"{offer.stops} stop{'s' if offer.stops != 1 else ''}"
    return (
        f"Best found: {offer.airline} {offer.display_flight_number} at "
        f"{offer.price:.2f} {offer.currency} ({stops})."
    )


def blend_advice(
    heuristic: SignalResult,
    seasonal: SeasonalSignal,
    best_offer: Optional[FlightOffer] = None,
) -> AdviceResult:
    h, s = heuristic.action, seasonal.action

    if h is Action.BOOK and s is Action.BOOK:
        action = Action.BOOK
        confidence = min(AGREE_BOOK_CAP, _mean_confidence(heuristic.confidence, seasonal.confidence) + AGREE_BOOK_BONUS)
        rationale = "Short-term heuristic and seasonal trend both suggest booking now."
    elif h is Action.WAIT and s is Action.WAIT:
        action = Action.WAIT
        confidence = min(AGREE_WAIT_CAP, _mean_confidence(heuristic.confidence, seasonal.confidence) + AGREE_WAIT_BONUS)
        rationale = "Short-term heuristic and seasonal trend both suggest waiting."
    elif h.is_opinionated and s.is_opinionated:
        action = h
        confidence = _mean_confidence(heuristic.confidence, seasonal.confidence) - DISAGREE_PENALTY
        rationale = (
            f"Signals disagree: the live search suggests {h.value.lower()} while the seasonal "
            f"trend suggests {s.value.lower()}; following the live search with reduced confidence."
        )
    elif s.is_opinionated:
        action = s
        confidence = seasonal.confidence
        rationale = "Only the seasonal trend gives a clear signal."
    elif h.is_opinionated:
        action = h
        confidence = heuristic.confidence
        rationale = "Only the short-term heuristic gives a clear signal."
    else:
        action = Action.NO_SIGNAL
        confidence = NEUTRAL_CONFIDENCE
        rationale = "Both signals are weak or neutral."

    explanation = f"{rationale} Heuristic: {heuristic.reason} Seasonal: {seasonal.reason}"

    return AdviceResult(
        action=action,
        confidence=_clamp(confidence),
        explanation=explanation,
        heuristic=heuristic,
        seasonal=seasonal,
        best_offer=best_offer,
        best_deal_summary=best_deal_summary(best_offer),
    )
