"""
Question selection for the information gathering phase.
"""

import random
import re
from typing import Optional

from storycraft.core.config import settings
from storycraft.core.constants import QuestionCategory
from storycraft.core.logging import get_logger
from storycraft.domain.enhanced_proposal import (
    EnhancedProposalMessage,
    ExtractedInformation,
    InformationGatheringQuestion,
    QuestionGenerationContext,
    ReadinessAssessment,
)

logger = get_logger(__name__)

P = QuestionCategory


def _question(
    id: str,
    category: QuestionCategory,
    question: str,
    follow_ups: list[str],
    priority: int,
    prerequisites: Optional[list[QuestionCategory]] = None,
) -> InformationGatheringQuestion:
    return InformationGatheringQuestion(
        id=id,
        category=category,
        question=question,
        follow_up_questions=follow_ups,
        priority=priority,
        prerequisite_categories=prerequisites or [],
    )


QUESTION_BANK: list[InformationGatheringQuestion] = [
    # Personas
    _question(
        "persona-1",
        P.PERSONA,
        "Who are the primary users or stakeholders who will be affected by this proposal?",
        [
            "What are their main responsibilities in their current role?",
            "What challenges do they face in their daily work?",
        ],
        10,
    ),
    _question(
        "persona-2",
        P.PERSONA,
        "What specific pain points or frustrations do these users experience with the current situation?",
        [
            "How do these pain points impact their productivity?",
            "Have they tried to solve these problems before?",
        ],
        9,
        [P.PERSONA],
    ),
    _question(
        "persona-3",
        P.PERSONA,
        "What would success look like from each user group's perspective?",
        [
            "How would they measure improvement?",
            "What would make them advocate for this solution?",
        ],
        8,
        [P.PERSONA],
    ),
    _question(
        "persona-4",
        P.PERSONA,
        "How do these different user types interact with each other in their workflow?",
        [
            "Are there any conflicts or competing priorities between user groups?",
            "How do communication patterns affect their work?",
        ],
        7,
        [P.PERSONA],
    ),
    # Context
    _question(
        "context-1",
        P.CONTEXT,
        "What's the current business context or situation that's driving this need?",
        [
            "Are there any recent changes in the market or industry?",
            "What competitive pressures are you facing?",
        ],
        9,
    ),
    _question(
        "context-2",
        P.CONTEXT,
        "What systems, processes, or technologies are currently in place?",
        [
            "What's working well with the current setup?",
            "What's causing the most friction or inefficiency?",
        ],
        8,
    ),
    _question(
        "context-3",
        P.CONTEXT,
        "Are there any regulatory, compliance, or organizational constraints we need to consider?",
        [
            "What approval processes will this need to go through?",
            "Are there any industry standards or regulations that apply?",
        ],
        7,
        [P.CONTEXT],
    ),
    _question(
        "context-4",
        P.CONTEXT,
        "How does this initiative align with your organization's strategic priorities?",
        [
            "What other initiatives might this impact or depend on?",
            "How does this fit into the broader digital transformation strategy?",
        ],
        6,
        [P.CONTEXT],
    ),
    # Goals
    _question(
        "goals-1",
        P.GOALS,
        "What are the primary business outcomes you're hoping to achieve?",
        [
            "How will you measure success?",
            "What metrics or KPIs are most important?",
        ],
        10,
        [P.CONTEXT],
    ),
    _question(
        "goals-2",
        P.GOALS,
        "Are there any secondary benefits or nice-to-have outcomes?",
        [
            "What unexpected benefits might emerge?",
            "How might this enable future opportunities?",
        ],
        6,
        [P.GOALS],
    ),
    _question(
        "goals-3",
        P.GOALS,
        "What timeline are you working with, and are there any key milestones or deadlines?",
        [
            "What happens if we miss the deadline?",
            "Are there any external factors driving the timeline?",
        ],
        8,
        [P.GOALS],
    ),
    _question(
        "goals-4",
        P.GOALS,
        "How will you know if the solution is working as intended after implementation?",
        [
            "What early indicators of success should we track?",
            "How often will progress be reviewed and by whom?",
        ],
        7,
        [P.GOALS],
    ),
    # Constraints
    _question(
        "constraints-1",
        P.CONSTRAINTS,
        "What budget range are you working with for this initiative?",
        [
            "Is this a one-time investment or ongoing expense?",
            "What's the cost of not solving this problem?",
        ],
        8,
        [P.GOALS],
    ),
    _question(
        "constraints-2",
        P.CONSTRAINTS,
        "What resources (people, time, expertise) are available for this project?",
        [
            "Who would be the key stakeholders or decision makers?",
            "What skills might you need to acquire or hire for?",
        ],
        7,
        [P.CONSTRAINTS],
    ),
    _question(
        "constraints-3",
        P.CONSTRAINTS,
        "Are there any technical limitations or integration requirements we should be aware of?",
        [
            "What systems need to work together?",
            "Are there any legacy systems that can't be changed?",
        ],
        6,
        [P.CONTEXT, P.CONSTRAINTS],
    ),
    _question(
        "constraints-4",
        P.CONSTRAINTS,
        "What organizational or political factors might impact this project?",
        [
            "Are there any departments or individuals who might resist change?",
            "What change management considerations are important?",
        ],
        5,
        [P.PERSONA, P.CONSTRAINTS],
    ),
    # Assumptions
    _question(
        "assumptions-1",
        P.ASSUMPTIONS,
        "What assumptions are you making about user adoption or behavior change?",
        [
            "How willing are users to change their current workflow?",
            "What might resistance look like?",
        ],
        7,
        [P.PERSONA, P.GOALS],
    ),
    _question(
        "assumptions-2",
        P.ASSUMPTIONS,
        "What do you assume about the technical feasibility or complexity?",
        [
            "What could make this more complex than expected?",
            "Are there any unknowns that could emerge during implementation?",
        ],
        6,
        [P.CONTEXT, P.GOALS],
    ),
    _question(
        "assumptions-3",
        P.ASSUMPTIONS,
        "What assumptions are you making about market conditions or external factors?",
        [
            "How might market changes affect this project?",
            "What external dependencies are you assuming will remain stable?",
        ],
        5,
        [P.CONTEXT, P.ASSUMPTIONS],
    ),
    # Validation
    _question(
        "validation-1",
        P.VALIDATION,
        "How will you validate that this solution actually solves the problem?",
        [
            "What would early indicators of success look like?",
            "How will you measure impact over time?",
        ],
        5,
        [P.GOALS, P.ASSUMPTIONS],
    ),
    _question(
        "validation-2",
        P.VALIDATION,
        "What could go wrong, and how would you know early if the project is off track?",
        [
            "What warning signs should we watch for?",
            "How will you course-correct if needed?",
        ],
        4,
        [P.CONSTRAINTS, P.ASSUMPTIONS],
    ),
    _question(
        "validation-3",
        P.VALIDATION,
        "How will you test key assumptions before full implementation?",
        [
            "What pilot programs or proof-of-concepts make sense?",
            "How will you gather feedback from users during development?",
        ],
        4,
        [P.ASSUMPTIONS, P.PERSONA],
    ),
]

CONTEXTUAL_QUESTIONS: dict[str, list[str]] = {
    P.PERSONA.value: [
        "I'd like to understand the people side better. Who would be most impacted by what you're describing?",
        "Let's talk about the users. Can you walk me through who would interact with this solution?",
        "To make sure we're building something people actually want - who are we building this for?",
    ],
    P.CONTEXT.value: [
        "Help me understand the bigger picture. What's the current situation that's driving this need?",
        "I want to make sure I understand the environment. What's happening in your organization right now?",
        "Let's zoom out a bit. What context should I know about your business or industry?",
    ],
    P.GOALS.value: [
        "Now that I understand the situation, what outcomes are you hoping to achieve?",
        "What would success look like if we could solve this perfectly?",
        "Let's get specific about goals. What would make this project a win?",
    ],
    P.CONSTRAINTS.value: [
        "Let's talk about reality. What constraints or limitations do we need to work within?",
        "Every project has boundaries. What are the key constraints we should consider?",
        "What might limit or restrict our approach here?",
    ],
    P.ASSUMPTIONS.value: [
        "I want to surface some assumptions. What are you taking for granted about this project?",
        "Let's identify some assumptions that might be worth validating. What do you think is true but haven't verified?",
        "What beliefs or expectations do you have that we should examine more closely?",
    ],
}

EXPLORATORY_QUESTIONS = [
    "What aspect of this project are you most excited about?",
    "What keeps you up at night when you think about this initiative?",
    "If you could wave a magic wand and make one thing perfect about this project, what would it be?",
    "What would happen if you did nothing and maintained the status quo?",
    "Who else should I talk to understand this problem better?",
]

# Minimum items per category before leaving information gathering
READINESS_MINIMUMS: dict[str, int] = {
    "personas": 2,
    "contexts": 3,
    "goals": 2,
    "constraints": 2,
    "assumptions": 1,
}

# Below these counts a category keeps being asked about
CATEGORY_THRESHOLDS: dict[str, int] = {
    P.PERSONA.value: 2,
    P.CONTEXT.value: 3,
    P.GOALS.value: 2,
    P.CONSTRAINTS.value: 2,
    P.ASSUMPTIONS.value: 2,
}

_SPECIFICS_PATTERN = re.compile(
    r"\b(specifically|exactly|particularly|for example|such as|including)\b",
    re.IGNORECASE,
)
_PEOPLE_HINTS = ("user", "people", "customer")
_BUSINESS_HINTS = ("business", "organization", "company")


def category_count(info: ExtractedInformation, category: str) -> int:
    """Number of knowledge base items backing a question category."""
    attribute = {
        P.PERSONA.value: "personas",
        P.CONTEXT.value: "contexts",
        P.GOALS.value: "goals",
        P.CONSTRAINTS.value: "constraints",
        P.ASSUMPTIONS.value: "assumptions",
    }.get(category)
    return len(getattr(info, attribute)) if attribute else 0


class QuestionGenerationService:
    """
    Chooses what to ask next while gathering information.
    """

    def __init__(
        self,
        question_bank: Optional[list[InformationGatheringQuestion]] = None,
        rng: Optional[random.Random] = None,
        readiness_threshold: Optional[int] = None,
        recent_window: Optional[int] = None,
    ) -> None:
        """
        Initialize the question generator.

        Args:
            question_bank: Questions to choose from (defaults to QUESTION_BANK)
            rng: Random source for phrasing choices
            readiness_threshold: Completion percentage that counts as ready
            recent_window: How many trailing messages count as "recent"
        """
        self.question_bank = question_bank if question_bank is not None else QUESTION_BANK
        self.rng = rng or random.Random()
        self.readiness_threshold = (
            readiness_threshold if readiness_threshold is not None else settings.workflow.readiness_threshold
        )
        self.recent_window = recent_window or settings.workflow.recent_question_window

    def get_question(self, question_id: str) -> Optional[InformationGatheringQuestion]:
        return next((q for q in self.question_bank if q.id == question_id), None)

    def generate_next_question(
        self, context: QuestionGenerationContext
    ) -> Optional[InformationGatheringQuestion]:
        """
        Pick the highest-priority question that is currently relevant.

        Ties keep question bank order.

        Returns:
            The question, or None when nothing is left to ask
        """
        available = self.get_available_questions(context)
        if not available:
            return None
        return max(available, key=lambda question: question.priority)

    def get_available_questions(
        self, context: QuestionGenerationContext
    ) -> list[InformationGatheringQuestion]:
        """Questions whose prerequisites are met, whose category is still needed
        and whose category was not asked about recently."""
        info = context.existing_information
        return [
            question
            for question in self.question_bank
            if self.are_prerequisites_met(question, info)
            and self.is_category_needed(question.category, info, context.missing_information)
            and not self.was_recently_asked(question, context.conversation_history)
        ]

    @staticmethod
    def are_prerequisites_met(question: InformationGatheringQuestion, info: ExtractedInformation) -> bool:
        return all(
            category_count(info, category) > 0
            for category in question.prerequisite_categories
            if category != P.VALIDATION.value
        )

    @staticmethod
    def is_category_needed(category: str, info: ExtractedInformation, missing: list[str]) -> bool:
        if category in missing:
            return True
        if category == P.VALIDATION.value:
            return bool(info.goals) and bool(info.assumptions)
        threshold = CATEGORY_THRESHOLDS.get(category)
        if threshold is None:
            return False
        return category_count(info, category) < threshold

    def was_recently_asked(
        self, question: InformationGatheringQuestion, history: list[EnhancedProposalMessage]
    ) -> bool:
        return any(
            not message.is_user and message.question_category == question.category
            for message in history[-self.recent_window:]
        )

    def generate_smart_question(self, context: QuestionGenerationContext) -> str:
        """
        Phrase a question for the most urgent gap in the knowledge base.

        Falls back to an exploratory question when nothing is urgent.
        """
        urgent = self.analyze_urgent_needs(context.existing_information)
        if urgent:
            return self.craft_contextual_question(urgent[0], context.conversation_history)
        return self.rng.choice(EXPLORATORY_QUESTIONS)

    @staticmethod
    def analyze_urgent_needs(info: ExtractedInformation) -> list[str]:
        """Gaps ordered by how much later questions depend on them."""
        needs = []
        if not info.personas:
            needs.append(P.PERSONA.value)
        if not info.contexts:
            needs.append(P.CONTEXT.value)
        if not info.goals and info.personas:
            needs.append(P.GOALS.value)
        if not info.constraints and info.goals:
            needs.append(P.CONSTRAINTS.value)
        if not info.assumptions and len(info.goals) > 1:
            needs.append(P.ASSUMPTIONS.value)
        return needs

    def craft_contextual_question(self, need: str, history: list[EnhancedProposalMessage]) -> str:
        """
        Choose the phrasing for ``need`` that best fits the recent conversation.

        Mentions of people favour the first variant and mentions of the
        business the second; otherwise the variant is random.
        """
        questions = CONTEXTUAL_QUESTIONS.get(need, [])
        if not questions:
            return f"Tell me more about {need}."

        recent_user_text = " ".join(
            message.content.lower() for message in [m for m in history if m.is_user][-3:]
        )
        if len(questions) > 1 and recent_user_text:
            if any(hint in recent_user_text for hint in _PEOPLE_HINTS):
                return questions[0]
            if any(hint in recent_user_text for hint in _BUSINESS_HINTS):
                return questions[1]

        return self.rng.choice(questions)

    @staticmethod
    def generate_follow_up(question: InformationGatheringQuestion, user_response: str) -> Optional[str]:
        """
        Pick a follow-up for an answer.

        Short or vague answers get the first follow-up, long and specific
        answers get the second.
        """
        follow_ups = question.follow_up_questions
        if not follow_ups:
            return None

        word_count = len(user_response.split())
        has_specifics = bool(_SPECIFICS_PATTERN.search(user_response))
        needs_more_detail = word_count < 15 or not has_specifics
        is_detailed = word_count > 50 and has_specifics

        if needs_more_detail:
            return follow_ups[0]
        if is_detailed and len(follow_ups) > 1:
            return follow_ups[1]
        return follow_ups[0]

    def assess_readiness_for_next_phase(self, info: ExtractedInformation) -> ReadinessAssessment:
        """Score the knowledge base against the per-category minimums."""
        total_score = 0
        max_score = 0
        missing = []
        for category, minimum in READINESS_MINIMUMS.items():
            actual = len(getattr(info, category))
            total_score += min(actual, minimum)
            max_score += minimum
            if actual < minimum:
                missing.append(category)

        # Half-up rounding to whole percent
        completion = int(total_score * 100 / max_score + 0.5)
        return ReadinessAssessment(
            ready=completion >= self.readiness_threshold,
            completion_percentage=completion,
            missing_categories=missing,
        )

    def generate_phase_transition_message(self, completion_percentage: int, missing_categories: list[str]) -> str:
        if completion_percentage >= self.readiness_threshold:
            return (
                "Great! I think we have enough information to start forming some concrete stories "
                "and epics. We've covered the key areas: personas, context, goals, and constraints. "
                "Let's move to the next phase where I'll help you structure this into actionable "
                "user stories."
            )

        missing = ", ".join(missing_categories)
        return (
            f"We're making good progress ({completion_percentage}% complete)! I'd like to gather "
            f"a bit more information about {missing} before we move to story formation. This will "
            "help ensure we create the most relevant and actionable user stories."
        )
