"""
Lead scoring for finished conversations.

The score is a deterministic 0-100 estimate of how valuable a conversation is
for the sales team, derived from the collected patient details and from how
engaged the patient was.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from voice_relay.models.conversation import ConversationMessage, PatientInfo, Role

HIGH_VALUE_TREATMENTS = (
    "hair transplant",
    "fue",
    "dhi",
    "dental implant",
    "hollywood smile",
    "veneer",
    "rhinoplasty",
    "liposuction",
    "bbl",
    "gastric sleeve",
    "gastric bypass",
    "bariatric",
)

# (minimum user messages, points), checked in order
ENGAGEMENT_TIERS = ((10, 25), (5, 15), (3, 10), (1, 5))

HOT_THRESHOLD = 70
WARM_THRESHOLD = 40
MAX_SCORE = 100


@dataclass(frozen=True)
class LeadScore:
    score: int
    status: str


def _present(value) -> bool:
    return value is not None and value != "" and value != []


def _is_high_value(treatments: Iterable[str]) -> bool:
    for treatment in treatments:
        lowered = treatment.lower()
        if any(keyword in lowered for keyword in HIGH_VALUE_TREATMENTS):
            return True
    return False


def engagement_points(user_message_count: int) -> int:
    for minimum, points in ENGAGEMENT_TIERS:
        if user_message_count >= minimum:
            return points
    return 0


def lead_status(score: int) -> str:
    if score >= HOT_THRESHOLD:
        return "hot"
    if score >= WARM_THRESHOLD:
        return "warm"
    return "cold"


def calculate_lead_score(
    patient_info: Optional[PatientInfo], messages: List[ConversationMessage]
) -> LeadScore:
    """
    Score a conversation from its patient details and transcript.

    Args:
        patient_info: Details collected during the conversation
        messages: The full transcript

    Returns:
        LeadScore: Score between 0 and 100 and its hot/warm/cold status
    """
    info = patient_info or PatientInfo()
    score = 0

    # Contact completeness
    if _present(info.full_name):
        score += 10
    if _present(info.phone):
        score += 15
    if _present(info.email):
        score += 5

    # Personal details
    for value in (info.age, info.country, info.city):
        if _present(value):
            score += 5

    # Treatment interest
    treatments = [t for t in (info.interested_treatments or []) if t]
    if treatments:
        score += 15
        if _is_high_value(treatments):
            score += 15

    user_messages = sum(1 for message in messages if message.role == Role.USER)
    score += engagement_points(user_messages)

    score = min(score, MAX_SCORE)
    return LeadScore(score=score, status=lead_status(score))
