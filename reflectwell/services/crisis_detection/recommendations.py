"""Recommendation lookup - crisis level to resource categories and message.

Pure table lookup: no I/O, no state. ERROR maps to a generic supportive
bundle so an indeterminate analysis still shows something helpful.
"""
from typing import Dict, Optional

from reflectwell.shared.models import CrisisLevel, RecommendationBundle


RECOMMENDATIONS: Dict[CrisisLevel, RecommendationBundle] = {
    CrisisLevel.IMMEDIATE: RecommendationBundle(
        primary_resource_category="immediate_crisis_resources",
        secondary_resource_category="emergency_contacts",
        self_care_category="grounding_techniques",
        message=(
            "If you're having thoughts of suicide or self-harm, please reach out "
            "for help immediately. You're not alone."
        ),
    ),
    CrisisLevel.ESCALATING: RecommendationBundle(
        primary_resource_category="crisis_support_resources",
        secondary_resource_category="mental_health_professionals",
        self_care_category="coping_strategies",
        message=(
            "It sounds like you're going through a really difficult time. "
            "Professional support could be helpful."
        ),
    ),
    CrisisLevel.CONCERNING: RecommendationBundle(
        primary_resource_category="mental_health_resources",
        secondary_resource_category="self_care_suggestions",
        self_care_category="wellness_activities",
        message=(
            "Taking care of your mental health is important. Consider reaching "
            "out for support if you need it."
        ),
    ),
    CrisisLevel.ERROR: RecommendationBundle(
        primary_resource_category="general_support_resources",
        secondary_resource_category="mental_health_resources",
        self_care_category="wellness_activities",
        message=(
            "If things feel heavy right now, support is available any time. "
            "You don't have to go through it alone."
        ),
    ),
}


def recommend(level: CrisisLevel) -> Optional[RecommendationBundle]:
    """Return the bundle for a level, or None for CrisisLevel.NONE."""
    return RECOMMENDATIONS.get(level)
