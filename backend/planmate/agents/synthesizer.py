from __future__ import annotations

from typing import Dict, List, Tuple

from planmate.core.budget import normalize_budget
from planmate.core.chips import companions_text
from planmate.core.logger import SessionLogger
from planmate.core.types import (
    BudgetBreakdown,
    BudgetLine,
    BudgetTier,
    Plan,
    PlannerSession,
    PlanTask,
    Slots,
    TimelineEntry,
)


DATE_HINTS = ("date", "romantic", "anniversary")
TRAVEL_HINTS = ("travel", "trip", "vacation", "getaway")

CATEGORY_HINTS: List[Tuple[str, Tuple[str, ...]]] = [
    ("romance", DATE_HINTS),
    ("work", ("work", "business", "meeting", "conference")),
    ("wellness", ("fitness", "gym", "workout", "yoga", "spa", "wellness")),
    ("travel", TRAVEL_HINTS),
]

# branch -> tier -> activity suggestions
SUGGESTIONS: Dict[str, Dict[BudgetTier, List[str]]] = {
    "date": {
        BudgetTier.low: [
            "Picnic in a local park with homemade snacks",
            "Cozy movie night in with a themed dinner",
            "Sunset walk followed by dessert from a favorite bakery",
        ],
        BudgetTier.medium: [
            "Dinner at a casual bistro with a shared dessert",
            "Live music or comedy show",
            "Cocktails at a rooftop bar",
        ],
        BudgetTier.high: [
            "Tasting menu at a fine dining restaurant",
            "Private wine tasting or chef's table experience",
            "Theater or concert tickets with pre-show cocktails",
        ],
    },
    "travel_business": {
        BudgetTier.low: [
            "Book a hotel within walking distance of the meeting venue",
            "Use public transit between appointments",
            "Pack meals and snacks for travel days",
        ],
        BudgetTier.medium: [
            "Business hotel with workspace and reliable wifi",
            "Rideshare between meetings to keep the schedule tight",
            "Client dinner at a well-reviewed local restaurant",
        ],
        BudgetTier.high: [
            "Executive hotel with lounge access",
            "Car service for airport transfers and meetings",
            "Private dining room for the client dinner",
        ],
    },
    "travel_leisure": {
        BudgetTier.low: [
            "Free walking tour of the main neighborhoods",
            "Local markets and street food",
            "Public parks, beaches and viewpoints",
        ],
        BudgetTier.medium: [
            "Guided day tour of the top sights",
            "Dinner at a highly rated local spot",
            "Museum or gallery pass",
        ],
        BudgetTier.high: [
            "Private guided tour",
            "Dinner at the city's most celebrated restaurant",
            "Spa afternoon or boat charter",
        ],
    },
    "generic": {
        BudgetTier.low: [
            "Keep it simple with free or low-cost options nearby",
            "Invite friends to share costs",
            "Check for community events happening that day",
        ],
        BudgetTier.medium: [
            "Book the main activity ahead of time",
            "Grab a bite at a casual spot nearby",
            "Leave room for one spontaneous stop",
        ],
        BudgetTier.high: [
            "Reserve a premium experience for the main activity",
            "Dinner at a standout restaurant afterwards",
            "Arrange door-to-door transport",
        ],
    },
}

TIPS: Dict[str, Dict[BudgetTier, List[str]]] = {
    "date": {
        BudgetTier.low: ["Prep snacks earlier in the day", "Have a rain backup for outdoor plans"],
        BudgetTier.medium: ["Reserve a table ahead of time", "Check show times before heading out"],
        BudgetTier.high: ["Book at least a week ahead", "Mention any special occasion when reserving"],
    },
    "travel_business": {
        BudgetTier.low: ["Keep receipts for expense reports", "Confirm meeting locations the day before"],
        BudgetTier.medium: ["Keep receipts for expense reports", "Download offline maps for the city"],
        BudgetTier.high: ["Ask the hotel concierge to arrange transfers", "Confirm dinner reservations 24 hours ahead"],
    },
    "travel_leisure": {
        BudgetTier.low: ["Look for city passes and free museum days", "Carry a reusable water bottle"],
        BudgetTier.medium: ["Book popular attractions online to skip lines", "Check the forecast before packing"],
        BudgetTier.high: ["Book private tours early", "Ask about hotel upgrades at check-in"],
    },
    "generic": {
        BudgetTier.low: ["Check traffic before leaving", "Confirm your plans with companions"],
        BudgetTier.medium: ["Check traffic before leaving", "Confirm your plans with companions"],
        BudgetTier.high: ["Confirm reservations the day before", "Confirm your plans with companions"],
    },
}

# branch -> tier -> (total, [(category, range)])
BUDGETS: Dict[str, Dict[BudgetTier, Tuple[str, List[Tuple[str, str]]]]] = {
    "date": {
        BudgetTier.low: ("$0-$40", [("Food & drinks", "$0-$25"), ("Activity", "$0-$10"), ("Transport", "$0-$5")]),
        BudgetTier.medium: ("$50-$120", [("Dinner", "$40-$80"), ("Activity", "$10-$30"), ("Transport", "$0-$10")]),
        BudgetTier.high: ("$150-$400", [("Dinner", "$100-$250"), ("Drinks & show", "$40-$120"), ("Transport", "$10-$30")]),
    },
    "travel_business": {
        BudgetTier.low: ("$300-$800", [("Transport", "$100-$300"), ("Lodging", "$150-$400"), ("Meals", "$50-$100")]),
        BudgetTier.medium: ("$800-$2000", [("Transport", "$250-$600"), ("Lodging", "$400-$1000"), ("Meals", "$150-$400")]),
        BudgetTier.high: ("$2000+", [("Transport", "$600+"), ("Lodging", "$1000+"), ("Meals & hosting", "$400+")]),
    },
    "travel_leisure": {
        BudgetTier.low: ("$200-$600", [("Transport", "$50-$200"), ("Lodging", "$100-$300"), ("Food", "$40-$80"), ("Activities", "$10-$20")]),
        BudgetTier.medium: ("$600-$1500", [("Transport", "$150-$400"), ("Lodging", "$300-$700"), ("Food", "$100-$250"), ("Activities", "$50-$150")]),
        BudgetTier.high: ("$1500+", [("Transport", "$400+"), ("Lodging", "$700+"), ("Food", "$250+"), ("Activities", "$150+")]),
    },
    "generic": {
        BudgetTier.low: ("$0-$30", [("Activity", "$0-$20"), ("Food", "$0-$10")]),
        BudgetTier.medium: ("$50-$100", [("Activity", "$20-$60"), ("Food", "$20-$40")]),
        BudgetTier.high: ("$150+", [("Activity", "$80+"), ("Food", "$50+"), ("Extras", "$20+")]),
    },
}

DEFAULT_OUTFIT: Dict[str, str] = {
    "date": "smart casual",
    "travel_business": "business",
    "travel_leisure": "comfortable",
    "generic": "casual",
}


def activity_category(activity_type: str | None) -> str:
    low = (activity_type or "").lower()
    for category, hints in CATEGORY_HINTS:
        if any(h in low for h in hints):
            return category
    return "adventure"


def plan_branch(slots: Slots) -> str:
    activity = (slots.activity_type or "").lower()
    if any(h in activity for h in DATE_HINTS):
        return "date"
    if any(h in activity for h in TRAVEL_HINTS):
        context = " ".join(s.lower() for s in (slots.vibe, companions_text(slots), slots.purpose) if s)
        return "travel_business" if "business" in context else "travel_leisure"
    return "generic"


def _destination(slots: Slots) -> str:
    if slots.location:
        return slots.location.destination or slots.location.current or "Destination"
    return "Destination"


def plan_tasks(slots: Slots) -> List[PlanTask]:
    activity = slots.activity_type or "Activity"
    destination = _destination(slots)
    departure = slots.timing.departure_time if slots.timing and slots.timing.departure_time else "the planned time"
    formality = slots.outfit.formality if slots.outfit and slots.outfit.formality else None
    companions = companions_text(slots)

    enjoy = "Make the most of your experience"
    if slots.vibe:
        enjoy += f", embrace the {slots.vibe} vibe"
    enjoy += "."
    if companions:
        enjoy += f" With {companions}."

    return [
        PlanTask(
            title=f"Prepare for {activity}",
            description=f"Get ready with {formality + ' attire' if formality else 'appropriate attire'}, check weather and traffic conditions",
            category="Preparation",
            priority="high",
            time_estimate="30-45 min",
        ),
        PlanTask(
            title=f"Travel to {destination}",
            description=f"Use {slots.transportation or 'preferred transportation'}, depart at {departure}. Check traffic before leaving.",
            category="Travel",
            priority="high",
            time_estimate="30 min",
        ),
        PlanTask(
            title=f"Enjoy {activity}",
            description=enjoy,
            category="Experience",
            priority="medium",
            time_estimate="2-3 hours",
        ),
    ]


class PlanSynthesizer:
    """Rule-based plan built from confirmed slots. No model call."""

    def __init__(self, logger: SessionLogger) -> None:
        self.logger = logger

    def synthesize(self, session: PlannerSession) -> Plan:
        slots = session.slots
        tier = normalize_budget(slots)
        table_tier = BudgetTier.medium if tier == BudgetTier.unknown else tier
        branch = plan_branch(slots)

        activity = slots.activity_type or "Your"
        destination = _destination(slots)
        timing = slots.timing
        time = (timing.departure_time or timing.arrival_time if timing else None) or "TBD"
        origin = slots.location.current if slots.location and slots.location.current else "Current location"

        total, lines = BUDGETS[branch][table_tier]
        formality = slots.outfit.formality if slots.outfit and slots.outfit.formality else DEFAULT_OUTFIT[branch]

        plan = Plan(
            title=f"{activity} Plan",
            summary=f"A {tier.value if tier != BudgetTier.unknown else 'flexible'}-budget {activity.lower()} at {destination}.",
            category=activity_category(slots.activity_type),
            activity_suggestions=list(SUGGESTIONS[branch][table_tier]),
            timeline=[
                TimelineEntry(
                    time=time,
                    activity=f"Leave for {destination}",
                    location=origin,
                    notes=f"Travel by {slots.transportation or 'preferred method'}",
                )
            ],
            budget_breakdown=BudgetBreakdown(
                tier=tier,
                total=total,
                items=[BudgetLine(category=c, range=r) for c, r in lines],
            ),
            tips=list(TIPS[branch][table_tier]),
            outfit=f"{formality} attire",
            tasks=plan_tasks(slots),
        )
        self.logger.step(
            "synthesizer",
            {"branch": branch, "tier": tier.value, "slots": slots.wire()},
            plan.model_dump(mode="json"),
        )
        return plan
