"""Evaluation criteria offered by the tag picker, grouped for display."""

from typing import Dict, Final, List, Tuple


CRITERIA_CATEGORIES: Final[Dict[str, Tuple[str, ...]]] = {
    "Opening & Structure": (
        "Strong opening",
        "Clear structure",
        "Smooth transitions",
        "Strong conclusion",
    ),
    "Delivery & Body Language": (
        "Natural gestures",
        "Eye contact",
        "Confident posture",
        "Purposeful stage movement",
        "Facial expressions",
        "Professional presence",
    ),
    "Voice & Pacing": (
        "Vocal variety",
        "Effective pauses",
        "Effective pacing",
        "Projection and clarity of voice",
        "Calm and controlled delivery",
    ),
    "Content & Language": (
        "Engaging storytelling",
        "Appropriate humor",
        "Useful examples",
        "Creative content",
        "Clear and simple language",
        "Maintained focus on main message",
    ),
    "Connection & Control": (
        "Energy and enthusiasm",
        "Audience connection",
        "Good time management",
        "Handling unexpected moments",
    ),
}


def all_criteria() -> List[str]:
    """Flat list of every criterion in display order."""
    return [item for items in CRITERIA_CATEGORIES.values() for item in items]


def category_of(criterion: str) -> str:
    """Display category of a catalog criterion ("Other" for free-form tags)."""
    for category, items in CRITERIA_CATEGORIES.items():
        if criterion in items:
            return category
    return "Other"
