"""
Provider offer normalization.

Each provider returns offers in its own shape. The functions here map one raw
offer onto the canonical FlightOffer, or return None when the offer cannot be
read. A bad offer never takes the rest of the batch down with it.

Price validity (finite, > 0) is deliberately NOT checked here; the
deduplicator filters those so that "unreadable" and "present but unusable"
offers show up separately in the logs.
"""
import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

from farecast.schemas.flight import FlightOffer

logger = logging.getLogger(__name__)


AIRLINES = {
    # Middle East & India
    "EK": "Emirates",
    "FZ": "flydubai",
    "EY": "Etihad Airways",
    "GF": "Gulf Air",
    "SV": "Saudia",
    "WY": "Oman Air",
    "QR": "Qatar Airways",
    "G9": "Air Arabia",
    "IX": "Air India Express",
    "AI": "Air India",
    "6E": "IndiGo",
    "UK": "Vistara",
    "SG": "SpiceJet",
    "UL": "SriLankan Airlines",
    "KU": "Kuwait Airways",
    # Europe
    "BA": "British Airways",
    "LH": "Lufthansa",
    "AF": "Air France",
    "KL": "KLM Royal Dutch Airlines",
    "TK": "Turkish Airlines",
    "LX": "SWISS International Air Lines",
    "OS": "Austrian Airlines",
    # Asia-Pacific
    "SQ": "Singapore Airlines",
    "CX": "Cathay Pacific",
    "MH": "Malaysia Airlines",
    "GA": "Garuda Indonesia",
    "JL": "Japan Airlines",
    "NH": "ANA All Nippon Airways",
    "NZ": "Air New Zealand",
    "QF": "Qantas",
    # North America
    "UA": "United Airlines",
    "AA": "American Airlines",
    "DL": "Delta Air Lines",
    "AC": "Air Canada",
}

_ISO_DURATION = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?)?$")
_FLIGHT_NUMBER = re.compile(r"^([A-Z][A-Z0-9]|[0-9][A-Z])\s*(\d+[A-Z]?)$")

GOOGLE_FLIGHTS_URL = "https://www.google.com/travel/flights"


def airline_name_from_code(code: Optional[str], fallback: Optional[str] = None) -> str:
    if code and code in AIRLINES:
        return AIRLINES[code]
    return fallback or code or "Unknown airline"


def parse_iso_duration(value: Optional[str]) -> Optional[int]:
    """Parse an ISO-8601 duration like "PT12H30M" or "P1DT2H" into minutes."""
    if not value:
        return None
    match = _ISO_DURATION.match(value.strip().upper())
    if not match or not any(match.groups()):
        return None
    days, hours, minutes = (int(g) if g else 0 for g in match.groups())
    return days * 24 * 60 + hours * 60 + minutes


def format_minutes(total: int) -> str:
    hours, minutes = divmod(int(total), 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes or not hours:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_duration(value: Any) -> str:
    """
    Human duration string from whatever unit a provider supplies.

    Integers (or numeric strings) are minutes; "PT..." strings are ISO-8601.
    Anything else is passed through untouched.
    """
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return format_minutes(int(value))
    text = str(value).strip()
    if text.isdigit():
        return format_minutes(int(text))
    minutes = parse_iso_duration(text)
    if minutes is not None:
        return format_minutes(minutes)
    return text


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        raise ValueError(f"Missing timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_price(value: Any) -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValueError(f"Missing price: {value!r}")
    return float(str(value))


def split_flight_number(raw: str, carrier_code: Optional[str] = None) -> Tuple[str, str]:
    """Split "6E 123" / "6E123" into ("6E", "123")."""
    text = (raw or "").strip().upper()
    match = _FLIGHT_NUMBER.match(text)
    if match:
        return match.group(1), match.group(2)
    if carrier_code and text.startswith(carrier_code.upper()):
        return carrier_code.upper(), text[len(carrier_code):].strip()
    if not text:
        raise ValueError("Missing flight number")
    return (carrier_code or "").upper(), text


def build_google_flights_url(origin: str, destination: str, depart_time: datetime) -> str:
    return (
        f"{GOOGLE_FLIGHTS_URL}#search;f={quote(origin)};t={quote(destination)};"
        f"d={depart_time.date().isoformat()};"
    )


def _build_offer(
    *,
    carrier_code: str,
    flight_number: str,
    airline: str,
    depart_raw: Any,
    arrive_raw: Any,
    duration: Any,
    segment_count: int,
    price_raw: Any,
    currency: str,
    booking_url: Optional[str],
    source: str,
    origin: str,
    destination: str,
) -> FlightOffer:
    if segment_count < 1:
        raise ValueError("Offer has no segments")
    if not carrier_code:
        raise ValueError("Missing carrier code")

    depart_time = parse_timestamp(depart_raw)
    arrive_time = parse_timestamp(arrive_raw)
    stops = segment_count - 1

    return FlightOffer(
        carrier_code=carrier_code,
        flight_number=flight_number,
        airline=airline,
        depart_time=depart_time,
        arrive_time=arrive_time,
        duration=format_duration(duration),
        stops=stops,
        nonstop=stops == 0,
        price=parse_price(price_raw),
        currency=(currency or "").upper(),
        booking_url=booking_url or build_google_flights_url(origin, destination, depart_time),
        source=source,
    )


def _from_amadeus(raw: dict, origin: str, destination: str, currency: str) -> FlightOffer:
    itinerary = raw["itineraries"][0]
    segments = itinerary["segments"]
    first, last = segments[0], segments[-1]
    carrier = first["carrierCode"]
    price = raw["price"]

    return _build_offer(
        carrier_code=carrier,
        flight_number=str(first["number"]),
        airline=airline_name_from_code(carrier),
        depart_raw=first["departure"]["at"],
        arrive_raw=last["arrival"]["at"],
        duration=itinerary.get("duration"),
        segment_count=len(segments),
        price_raw=price.get("grandTotal") or price.get("total"),
        currency=price.get("currency") or currency,
        booking_url=None,
        source="amadeus",
        origin=origin,
        destination=destination,
    )


def _from_skyscanner(raw: dict, origin: str, destination: str, currency: str) -> FlightOffer:
    leg = raw["legs"][0]
    segments = leg["segments"]
    first, last = segments[0], segments[-1]
    carrier = first["marketingCarrier"]["code"]
    price = raw.get("price") or {}

    return _build_offer(
        carrier_code=carrier,
        flight_number=str(first["flightNumber"]),
        airline=airline_name_from_code(carrier, first["marketingCarrier"].get("name")),
        depart_raw=first["departure"],
        arrive_raw=last["arrival"],
        duration=leg.get("duration"),
        segment_count=len(segments),
        price_raw=price.get("amount"),
        currency=price.get("currency") or currency,
        booking_url=raw.get("bookingUrl") or raw.get("deepLink"),
        source="skyscanner",
        origin=origin,
        destination=destination,
    )


def _from_serpapi(raw: dict, origin: str, destination: str, currency: str) -> FlightOffer:
    segments = raw["flights"]
    first, last = segments[0], segments[-1]
    carrier, number = split_flight_number(first.get("flight_number", ""))

    return _build_offer(
        carrier_code=carrier,
        flight_number=number,
        airline=airline_name_from_code(carrier, first.get("airline")),
        depart_raw=first["departure_airport"]["time"],
        arrive_raw=last["arrival_airport"]["time"],
        duration=raw.get("total_duration"),
        segment_count=len(segments),
        price_raw=raw.get("price"),
        currency=currency,
        booking_url=raw.get("google_flights_url"),
        source="serpapi",
        origin=origin,
        destination=destination,
    )


NORMALIZERS: Dict[str, Callable[[dict, str, str, str], FlightOffer]] = {
    "amadeus": _from_amadeus,
    "skyscanner": _from_skyscanner,
    "serpapi": _from_serpapi,
}


def normalize_offer(
    source: str,
    raw: dict,
    origin: str,
    destination: str,
    currency: str,
) -> Optional[FlightOffer]:
    """Normalize a single raw offer from *source*; None if it can't be read."""
    normalizer = NORMALIZERS.get(source)
    if normalizer is None:
        logger.warning(f"No normalizer registered for source '{source}'")
        return None
    try:
        return normalizer(raw, origin, destination, currency)
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        logger.debug(f"{source}: dropping unreadable offer ({type(e).__name__}: {e})")
        return None


def normalize_offers(
    source: str,
    raw_offers: Iterable[dict],
    origin: str,
    destination: str,
    currency: str,
) -> List[FlightOffer]:
    offers: List[FlightOffer] = []
    dropped = 0
    for raw in raw_offers:
        offer = normalize_offer(source, raw, origin, destination, currency)
        if offer is None:
            dropped += 1
        else:
            offers.append(offer)

    if dropped:
        logger.info(f"{source}: normalized {len(offers)} offers, dropped {dropped} unreadable")
    return offers
