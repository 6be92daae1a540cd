"""Static crisis resource catalog.

No AI-generated content here, just reviewed resources keyed by the
categories a RecommendationBundle names.
"""
from typing import Any, Dict, List, Optional

from reflectwell.shared.models import RecommendationBundle


RESOURCE_CATALOG: Dict[str, List[Dict[str, Any]]] = {
    "immediate_crisis_resources": [
        {
            "id": "us_988",
            "name": "988 Suicide & Crisis Lifeline",
            "description": "Free and confidential support for people in suicidal crisis or emotional distress",
            "contact": "988",
            "type": "phone",
            "availability": "24/7",
            "priority": 1,
        },
        {
            "id": "us_crisis_text",
            "name": "Crisis Text Line",
            "description": "Free, 24/7 crisis support via text message",
            "contact": "Text HOME to 741741",
            "type": "text",
            "availability": "24/7",
            "priority": 2,
        },
    ],
    "emergency_contacts": [
        {
            "id": "global_emergency",
            "name": "Local Emergency Services",
            "description": "For immediate life-threatening emergencies",
            "contact": "911 (US/Canada), 112 (EU), 000 (Australia)",
            "type": "emergency",
            "availability": "24/7",
            "priority": 1,
        },
    ],
    "crisis_support_resources": [
        {
            "id": "us_988",
            "name": "988 Suicide & Crisis Lifeline",
            "description": "Call or text any time you need to talk",
            "contact": "988",
            "type": "phone",
            "availability": "24/7",
            "priority": 1,
        },
        {
            "id": "us_warmline",
            "name": "SAMHSA National Helpline",
            "description": "Treatment referral and information for mental health and substance use",
            "contact": "1-800-662-4357",
            "type": "phone",
            "availability": "24/7",
            "priority": 2,
        },
    ],
    "mental_health_professionals": [
        {
            "id": "psychology_today",
            "name": "Psychology Today Therapist Finder",
            "description": "Find licensed therapists near you",
            "website": "https://psychologytoday.com",
            "type": "directory",
            "priority": 1,
        },
        {
            "id": "betterhelp",
            "name": "BetterHelp Online Therapy",
            "description": "Professional online counseling platform",
            "website": "https://betterhelp.com",
            "type": "online_therapy",
            "priority": 2,
        },
    ],
    "mental_health_resources": [
        {
            "id": "nami",
            "name": "NAMI HelpLine",
            "description": "Information, referrals and support",
            "contact": "1-800-950-6264",
            "type": "phone",
            "availability": "Weekdays",
            "priority": 1,
        },
    ],
    "general_support_resources": [
        {
            "id": "us_988",
            "name": "988 Suicide & Crisis Lifeline",
            "description": "Support for any kind of emotional distress",
            "contact": "988",
            "type": "phone",
            "availability": "24/7",
            "priority": 1,
        },
    ],
    "grounding_techniques": [
        {
            "id": "grounding_54321",
            "name": "5-4-3-2-1 Grounding Technique",
            "description": "Immediate anxiety relief technique",
            "instructions": (
                "5 things you can see, 4 you can touch, 3 you can hear, "
                "2 you can smell, 1 you can taste"
            ),
            "type": "technique",
            "priority": 1,
        },
        {
            "id": "box_breathing",
            "name": "Box Breathing",
            "description": "Calming breathing technique",
            "instructions": "Breathe in for 4, hold for 4, breathe out for 4, hold for 4. Repeat.",
            "type": "technique",
            "priority": 2,
        },
    ],
    "coping_strategies": [
        {
            "id": "safety_plan",
            "name": "Creating a Safety Plan",
            "description": "Steps to stay safe during a crisis",
            "website": "https://suicidesafetyplan.com",
            "type": "resource",
            "priority": 1,
        },
        {
            "id": "box_breathing",
            "name": "Box Breathing",
            "description": "Calming breathing technique",
            "instructions": "Breathe in for 4, hold for 4, breathe out for 4, hold for 4. Repeat.",
            "type": "technique",
            "priority": 2,
        },
    ],
    "self_care_suggestions": [
        {
            "id": "reach_out",
            "name": "Reach Out to Someone",
            "description": "A short message to a friend or family member can help",
            "type": "suggestion",
            "priority": 1,
        },
    ],
    "wellness_activities": [
        {
            "id": "short_walk",
            "name": "Take a Short Walk",
            "description": "Ten minutes outside can lift your mood",
            "type": "activity",
            "priority": 1,
        },
        {
            "id": "journaling",
            "name": "Free Writing",
            "description": "Write for five minutes without editing yourself",
            "type": "activity",
            "priority": 2,
        },
    ],
}


def resources_for(bundle: Optional[RecommendationBundle]) -> Dict[str, List[Dict[str, Any]]]:
    """Resources for a bundle's primary, secondary and self-care categories.

    Each list is ordered by priority; unknown categories yield empty lists.
    """
    if bundle is None:
        return {}
    categories = {
        "primary": bundle.primary_resource_category,
        "secondary": bundle.secondary_resource_category,
        "self_care": bundle.self_care_category,
    }
    return {
        slot: sorted(RESOURCE_CATALOG.get(category, []), key=lambda r: r["priority"])
        for slot, category in categories.items()
    }
