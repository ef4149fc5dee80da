"""
Keyword-based extraction of personas, contexts, goals, constraints and
assumptions from conversation messages.
"""

import re
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

from storycraft.core.constants import (
    AssumptionCategory,
    ConstraintType,
    ContextCategory,
    GoalType,
    Level,
    Severity,
)
from storycraft.core.logging import get_logger
from storycraft.core.security import generate_item_id
from storycraft.domain.enhanced_proposal import (
    Assumption,
    BusinessContext,
    Constraint,
    EnhancedProposalMessage,
    ExtractedInformation,
    InformationExtractionResult,
    PartialExtractedInformation,
    ProjectGoal,
    UserPersona,
)

logger = get_logger(__name__)

ItemT = TypeVar("ItemT", UserPersona, BusinessContext, ProjectGoal, Constraint, Assumption)

MIN_SENTENCE_LENGTH = 10
MATCH_PREFIX_LENGTH = 20

# =============================================================================
# Keyword tables
# =============================================================================

PERSONA_PATTERNS: list[tuple[list[str], str]] = [
    (["user", "end user", "customer"], "End User"),
    (["admin", "administrator", "system admin"], "Administrator"),
    (["manager", "project manager", "team lead"], "Manager"),
    (["developer", "engineer", "programmer"], "Developer"),
    (["stakeholder", "business owner", "product owner"], "Stakeholder"),
    (["analyst", "business analyst", "data analyst"], "Analyst"),
    (["client", "customer", "buyer"], "Client"),
    (["employee", "staff", "team member"], "Employee"),
]

CONTEXT_PATTERNS: list[tuple[list[str], ContextCategory, str]] = [
    (
        ["market", "competition", "industry", "competitive landscape", "market share"],
        ContextCategory.MARKET,
        "Market Context",
    ),
    (
        ["technology", "system", "platform", "tech stack", "infrastructure", "software"],
        ContextCategory.TECHNOLOGY,
        "Technology Context",
    ),
    (
        ["organization", "company", "team", "department", "organizational structure"],
        ContextCategory.ORGANIZATIONAL,
        "Organizational Context",
    ),
    (
        ["regulation", "compliance", "legal", "policy", "governance", "audit"],
        ContextCategory.REGULATORY,
        "Regulatory Context",
    ),
    (
        ["competitor", "rival", "alternative", "competing solution"],
        ContextCategory.COMPETITIVE,
        "Competitive Context",
    ),
]

GOAL_PATTERNS: list[tuple[list[str], GoalType]] = [
    (["goal", "objective", "aim", "target"], GoalType.BUSINESS),
    (["achieve", "accomplish", "reach", "attain"], GoalType.BUSINESS),
    (["improve", "enhance", "optimize", "increase"], GoalType.OPERATIONAL),
    (["reduce", "decrease", "minimize", "eliminate"], GoalType.OPERATIONAL),
    (["user experience", "customer satisfaction", "usability"], GoalType.USER),
    (["performance", "scalability", "reliability", "security"], GoalType.TECHNICAL),
]

CONSTRAINT_PATTERNS: list[tuple[list[str], ConstraintType]] = [
    (["budget", "cost", "expensive", "cheap", "funding", "financial"], ConstraintType.BUDGET),
    (["timeline", "deadline", "schedule", "time constraint", "urgent"], ConstraintType.TIMELINE),
    (["technical limitation", "system constraint", "technology limit"], ConstraintType.TECHNICAL),
    (["regulation", "compliance requirement", "legal constraint"], ConstraintType.REGULATORY),
    (["resource", "staff", "people", "team size", "capacity"], ConstraintType.RESOURCE),
]

ASSUMPTION_KEYWORDS = [
    "assume",
    "assumption",
    "expect",
    "believe",
    "think",
    "probably",
    "likely",
    "suppose",
    "presume",
    "anticipate",
]

PAIN_KEYWORDS = ["problem", "issue", "challenge", "difficulty", "struggle", "frustration", "bottleneck"]
PERSONA_GOAL_KEYWORDS = ["want", "need", "goal", "achieve", "improve", "succeed"]
BEHAVIOR_KEYWORDS = ["use", "prefer", "avoid", "typically", "usually", "always", "never"]

HIGH_IMPACT_KEYWORDS = ["critical", "crucial", "essential", "vital", "must have"]
MEDIUM_IMPACT_KEYWORDS = ["important", "significant", "major", "should have"]
HIGH_PRIORITY_KEYWORDS = ["critical", "urgent", "must", "required", "essential"]
MEDIUM_PRIORITY_KEYWORDS = ["important", "should", "significant", "moderate"]
MEASURABLE_KEYWORDS = ["%", "percent", "number", "count", "metric", "kpi", "measure", "track", "quantify"]
METRIC_KEYWORDS = ["conversion", "engagement", "performance", "efficiency", "satisfaction", "retention", "growth"]
CRITICAL_SEVERITY_KEYWORDS = ["critical", "must", "required", "blocking"]
IMPORTANT_SEVERITY_KEYWORDS = ["important", "should", "significant"]
HIGH_CONFIDENCE_KEYWORDS = ["certain", "sure", "confident", "definite"]
MEDIUM_CONFIDENCE_KEYWORDS = ["likely", "probably", "expect"]
VALIDATION_KEYWORDS = ["verify", "confirm", "validate", "check", "uncertain", "unclear", "assumption"]

CATEGORY_CONFIDENCE = {
    "personas": 0.8,
    "contexts": 0.7,
    "goals": 0.9,
    "constraints": 0.8,
    "assumptions": 0.6,
}

SUGGESTED_QUESTIONS = {
    "personas": "Can you tell me more about the specific challenges these users face?",
    "goals": "How will you measure success for these objectives?",
    "constraints": "Are there any workarounds or alternatives we should consider for these constraints?",
    "assumptions": "How might we validate these assumptions before proceeding?",
}


# =============================================================================
# Text helpers
# =============================================================================


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def extract_sentences_containing(text: str, keyword: str) -> list[str]:
    """
    Sentences of ``text`` that mention ``keyword``.

    Sentences are split on runs of ``.``, ``!`` and ``?``, trimmed, and kept
    only when longer than 10 characters.
    """
    needle = keyword.lower()
    return [
        sentence.strip()
        for sentence in re.split(r"[.!?]+", text)
        if needle in sentence.lower() and len(sentence.strip()) > MIN_SENTENCE_LENGTH
    ]


def extract_pain_points(text: str) -> list[str]:
    pain_points: list[str] = []
    for keyword in PAIN_KEYWORDS:
        if keyword in text:
            pain_points.extend(
                sentence[:1].upper() + sentence[1:]
                for sentence in extract_sentences_containing(text, keyword)
            )
    return _dedupe(pain_points)


def extract_persona_goals(text: str) -> list[str]:
    return _dedupe(f"Wants to {keyword}" for keyword in PERSONA_GOAL_KEYWORDS if keyword in text)


def extract_behaviors(text: str) -> list[str]:
    return _dedupe(
        f"{keyword} behavior pattern identified" for keyword in BEHAVIOR_KEYWORDS if keyword in text
    )


def determine_impact(text: str) -> Level:
    if _contains_any(text, HIGH_IMPACT_KEYWORDS):
        return Level.HIGH
    if _contains_any(text, MEDIUM_IMPACT_KEYWORDS):
        return Level.MEDIUM
    return Level.LOW


def determine_goal_type(text: str, default: GoalType) -> GoalType:
    if _contains_any(text, ["revenue", "profit", "business"]):
        return GoalType.BUSINESS
    if _contains_any(text, ["user", "customer", "experience"]):
        return GoalType.USER
    if _contains_any(text, ["system", "technical", "performance"]):
        return GoalType.TECHNICAL
    return default


def determine_priority(text: str) -> Level:
    if _contains_any(text, HIGH_PRIORITY_KEYWORDS):
        return Level.HIGH
    if _contains_any(text, MEDIUM_PRIORITY_KEYWORDS):
        return Level.MEDIUM
    return Level.LOW


def is_measurable(text: str) -> bool:
    return _contains_any(text, MEASURABLE_KEYWORDS)


def extract_metrics(text: str) -> list[str]:
    return [keyword for keyword in METRIC_KEYWORDS if keyword in text]


def determine_severity(text: str) -> Severity:
    if _contains_any(text, CRITICAL_SEVERITY_KEYWORDS):
        return Severity.CRITICAL
    if _contains_any(text, IMPORTANT_SEVERITY_KEYWORDS):
        return Severity.IMPORTANT
    return Severity.MINOR


def determine_assumption_category(text: str) -> AssumptionCategory:
    if _contains_any(text, ["business", "revenue", "profit"]):
        return AssumptionCategory.BUSINESS
    if _contains_any(text, ["technical", "system", "technology"]):
        return AssumptionCategory.TECHNICAL
    if _contains_any(text, ["user", "customer", "behavior"]):
        return AssumptionCategory.USER
    return AssumptionCategory.MARKET


def determine_confidence(text: str) -> Level:
    if _contains_any(text, HIGH_CONFIDENCE_KEYWORDS):
        return Level.HIGH
    if _contains_any(text, MEDIUM_CONFIDENCE_KEYWORDS):
        return Level.MEDIUM
    return Level.LOW


def needs_validation(text: str) -> bool:
    return _contains_any(text, VALIDATION_KEYWORDS)


# =============================================================================
# Service
# =============================================================================


class InformationExtractionService:
    """
    Builds and maintains the knowledge base of a guided proposal.

    Extraction is plain substring matching over the lowercased message text.
    Every keyword found yields an item described by the first sentence that
    mentions it; items are then merged into the existing knowledge base so
    that repeated mentions only add provenance.
    """

    def extract_information_from_message(
        self,
        message: EnhancedProposalMessage,
        existing: ExtractedInformation,
    ) -> InformationExtractionResult:
        """
        Extract structured information from a conversation message.

        Args:
            message: Message to analyze
            existing: Current knowledge base

        Returns:
            Merged lists for every category that produced items, the
            extraction confidence and follow-up question suggestions
        """
        content = message.content.lower()
        extracted = PartialExtractedInformation()

        personas = self.extract_personas(content, message.id)
        if personas:
            extracted.personas = self.merge_personas(existing.personas, personas)

        contexts = self.extract_contexts(content, message.id)
        if contexts:
            extracted.contexts = self.merge_contexts(existing.contexts, contexts)

        goals = self.extract_goals(content, message.id)
        if goals:
            extracted.goals = self.merge_goals(existing.goals, goals)

        constraints = self.extract_constraints(content, message.id)
        if constraints:
            extracted.constraints = self.merge_constraints(existing.constraints, constraints)

        assumptions = self.extract_assumptions(content, message.id)
        if assumptions:
            extracted.assumptions = self.merge_assumptions(existing.assumptions, assumptions)

        found = [category for category in CATEGORY_CONFIDENCE if getattr(extracted, category) is not None]
        confidence = (
            sum(CATEGORY_CONFIDENCE[category] for category in found) / len(found) if found else 0.0
        )

        logger.debug(
            "Information extracted",
            message_id=message.id,
            categories=found,
            confidence=round(confidence, 3),
        )

        return InformationExtractionResult(
            extracted=extracted,
            confidence=confidence,
            suggested_questions=[
                SUGGESTED_QUESTIONS[category] for category in found if category in SUGGESTED_QUESTIONS
            ],
        )

    def apply_extraction(
        self,
        existing: ExtractedInformation,
        result: InformationExtractionResult,
        now: Optional[datetime] = None,
    ) -> ExtractedInformation:
        """Replace the categories present in ``result``, keeping the rest."""
        updates = {
            category: items
            for category, items in result.extracted
            if items is not None
        }
        return existing.model_copy(update={**updates, "last_updated": now or datetime.utcnow()})

    # -------------------------------------------------------------------------
    # Extractors
    # -------------------------------------------------------------------------

    def extract_personas(self, content: str, message_id: str) -> list[UserPersona]:
        personas = []
        for keywords, role in PERSONA_PATTERNS:
            for keyword in keywords:
                sentences = self._matching_sentences(content, keyword)
                if not sentences:
                    continue
                joined = " ".join(sentences)
                personas.append(
                    UserPersona(
                        id=generate_item_id("persona", keyword),
                        name=role,
                        role=role,
                        description=sentences[0],
                        pain_points=extract_pain_points(joined),
                        goals=extract_persona_goals(joined),
                        behaviors=extract_behaviors(joined),
                        extracted_from=[message_id],
                    )
                )
        return personas

    def extract_contexts(self, content: str, message_id: str) -> list[BusinessContext]:
        contexts = []
        for keywords, category, title in CONTEXT_PATTERNS:
            for keyword in keywords:
                sentences = self._matching_sentences(content, keyword)
                if not sentences:
                    continue
                contexts.append(
                    BusinessContext(
                        id=generate_item_id("context", keyword),
                        category=category,
                        title=title,
                        description=sentences[0],
                        impact=determine_impact(" ".join(sentences)),
                        extracted_from=[message_id],
                    )
                )
        return contexts

    def extract_goals(self, content: str, message_id: str) -> list[ProjectGoal]:
        goals = []
        for keywords, default_type in GOAL_PATTERNS:
            for keyword in keywords:
                sentences = self._matching_sentences(content, keyword)
                if not sentences:
                    continue
                joined = " ".join(sentences)
                goals.append(
                    ProjectGoal(
                        id=generate_item_id("goal", keyword),
                        type=determine_goal_type(joined, default_type),
                        description=sentences[0],
                        priority=determine_priority(joined),
                        measurable=is_measurable(joined),
                        metrics=extract_metrics(joined),
                        extracted_from=[message_id],
                    )
                )
        return goals

    def extract_constraints(self, content: str, message_id: str) -> list[Constraint]:
        constraints = []
        for keywords, constraint_type in CONSTRAINT_PATTERNS:
            for keyword in keywords:
                sentences = self._matching_sentences(content, keyword)
                if not sentences:
                    continue
                constraints.append(
                    Constraint(
                        id=generate_item_id("constraint", keyword),
                        type=constraint_type,
                        description=sentences[0],
                        severity=determine_severity(" ".join(sentences)),
                        extracted_from=[message_id],
                    )
                )
        return constraints

    def extract_assumptions(self, content: str, message_id: str) -> list[Assumption]:
        assumptions = []
        for keyword in ASSUMPTION_KEYWORDS:
            sentences = self._matching_sentences(content, keyword)
            if not sentences:
                continue
            joined = " ".join(sentences)
            assumptions.append(
                Assumption(
                    id=generate_item_id("assumption", keyword),
                    category=determine_assumption_category(joined),
                    description=sentences[0],
                    confidence=determine_confidence(joined),
                    needs_validation=needs_validation(joined),
                    extracted_from=[message_id],
                )
            )
        return assumptions

    @staticmethod
    def _matching_sentences(content: str, keyword: str) -> list[str]:
        if keyword not in content:
            return []
        return extract_sentences_containing(content, keyword)

    # -------------------------------------------------------------------------
    # Merging
    # -------------------------------------------------------------------------

    @staticmethod
    def _merge(
        existing: list[ItemT],
        new_items: list[ItemT],
        matches: Callable[[ItemT, ItemT], bool],
        combine: Callable[[ItemT, ItemT], ItemT],
    ) -> list[ItemT]:
        """
        Fold ``new_items`` into ``existing`` without duplicating entries.

        Items added earlier in the same batch are candidates for matching too.
        """
        merged = list(existing)
        for new_item in new_items:
            index = next((i for i, item in enumerate(merged) if matches(item, new_item)), None)
            if index is None:
                merged.append(new_item)
            else:
                merged[index] = combine(merged[index], new_item)
        return merged

    @staticmethod
    def _with_sources(item: ItemT, new_item: ItemT) -> ItemT:
        return item.model_copy(
            update={"extracted_from": _dedupe([*item.extracted_from, *new_item.extracted_from])}
        )

    def merge_personas(self, existing: list[UserPersona], new_personas: list[UserPersona]) -> list[UserPersona]:
        """Personas match on name or role, case-insensitively."""

        def matches(item: UserPersona, new: UserPersona) -> bool:
            return item.name.lower() == new.name.lower() or item.role.lower() == new.role.lower()

        def combine(item: UserPersona, new: UserPersona) -> UserPersona:
            return item.model_copy(
                update={
                    "description": item.description or new.description,
                    "pain_points": _dedupe([*item.pain_points, *new.pain_points]),
                    "goals": _dedupe([*item.goals, *new.goals]),
                    "behaviors": _dedupe([*item.behaviors, *new.behaviors]),
                    "extracted_from": _dedupe([*item.extracted_from, *new.extracted_from]),
                }
            )

        return self._merge(existing, new_personas, matches, combine)

    def merge_contexts(
        self, existing: list[BusinessContext], new_contexts: list[BusinessContext]
    ) -> list[BusinessContext]:
        """Contexts match on category when the existing title contains the new one."""

        def matches(item: BusinessContext, new: BusinessContext) -> bool:
            return item.category == new.category and new.title.lower() in item.title.lower()

        return self._merge(existing, new_contexts, matches, self._with_sources)

    def merge_goals(self, existing: list[ProjectGoal], new_goals: list[ProjectGoal]) -> list[ProjectGoal]:
        """Goals match when the existing description contains the new one's first 20 characters."""

        def matches(item: ProjectGoal, new: ProjectGoal) -> bool:
            return new.description.lower()[:MATCH_PREFIX_LENGTH] in item.description.lower()

        return self._merge(existing, new_goals, matches, self._with_sources)

    def merge_constraints(self, existing: list[Constraint], new_constraints: list[Constraint]) -> list[Constraint]:
        """One constraint per type."""

        def matches(item: Constraint, new: Constraint) -> bool:
            return item.type == new.type

        return self._merge(existing, new_constraints, matches, self._with_sources)

    def merge_assumptions(self, existing: list[Assumption], new_assumptions: list[Assumption]) -> list[Assumption]:
        """Assumptions match on category plus the 20-character description prefix."""

        def matches(item: Assumption, new: Assumption) -> bool:
            return (
                item.category == new.category
                and new.description.lower()[:MATCH_PREFIX_LENGTH] in item.description.lower()
            )

        return self._merge(existing, new_assumptions, matches, self._with_sources)
