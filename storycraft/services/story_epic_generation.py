"""
Template-based generation of user stories and epics from a knowledge base.

Stories come from persona x goal pairs, persona pain points and technical
constraints. Epics group those stories by theme, with an extra epic for each
high-priority goal that no theme epic covers.
"""

import re
from datetime import datetime
from typing import Iterable, Optional

from storycraft.core.constants import (
    ConstraintType,
    ContentStatus,
    ContextCategory,
    CriteriaPriority,
    EpicEffort,
    Level,
    Severity,
    StoryEffort,
)
from storycraft.core.logging import get_logger
from storycraft.domain.enhanced_proposal import (
    AcceptanceCriteria,
    Assumption,
    BusinessContext,
    Constraint,
    Epic,
    ExtractedInformation,
    GeneratedContent,
    ProjectGoal,
    UserPersona,
    UserStory,
)

logger = get_logger(__name__)

TITLE_EXCERPT_LENGTH = 50

# Checked in order; the first match decides the theme
TAG_THEMES = [
    ("technical", "Technical Foundation"),
    ("user-management", "User Management"),
    ("reporting", "Reporting & Analytics"),
    ("integration", "System Integration"),
    ("security", "Security & Compliance"),
]
ROLE_THEMES = [
    ("admin", "Administration"),
    ("user", "User Experience"),
    ("manager", "Management & Oversight"),
]
DEFAULT_THEME = "General"

CONTEXT_TAGS = {
    ContextCategory.TECHNOLOGY.value: "technical",
    ContextCategory.ORGANIZATIONAL.value: "operational",
}

GOAL_EFFORT = {
    Level.HIGH.value: StoryEffort.L,
    Level.MEDIUM.value: StoryEffort.M,
}

PRIORITY_RANK = {Level.HIGH.value: 3, Level.MEDIUM.value: 2, Level.LOW.value: 1}


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _shares_source(sources: list[str], *owners: list[str]) -> bool:
    return any(source in owner for owner in owners for source in sources)


def theme_for_story(story: UserStory) -> str:
    for tag, theme in TAG_THEMES:
        if tag in story.tags:
            return theme
    role = story.as_a.lower()
    for keyword, theme in ROLE_THEMES:
        if keyword in role:
            return theme
    return DEFAULT_THEME


def estimate_epic_effort(stories: list[UserStory]) -> EpicEffort:
    total = len(stories)
    if total <= 3:
        return EpicEffort.SMALL
    if total <= 7:
        return EpicEffort.MEDIUM
    if total <= 12:
        return EpicEffort.LARGE
    return EpicEffort.EXTRA_LARGE


def determine_epic_priority(stories: list[UserStory]) -> Level:
    """High when most stories are high, medium when most are medium."""
    half = len(stories) / 2
    if sum(1 for story in stories if story.priority == Level.HIGH) > half:
        return Level.HIGH
    if sum(1 for story in stories if story.priority == Level.MEDIUM) > half:
        return Level.MEDIUM
    return Level.LOW


class StoryEpicGenerationService:
    """
    Turns extracted information into user stories and epics.
    """

    def generate_user_stories(self, info: ExtractedInformation) -> list[UserStory]:
        """
        Generate stories for every persona and goal pair plus technical stories.

        Stories with the same as-a / i-want / so-that triple are dropped,
        keeping the first.
        """
        stories: list[UserStory] = []

        for persona in info.personas:
            for goal in info.goals:
                contexts = [
                    context
                    for context in info.contexts
                    if _shares_source(context.extracted_from, persona.extracted_from, goal.extracted_from)
                ]
                constraints = [
                    constraint
                    for constraint in info.constraints
                    if _shares_source(constraint.extracted_from, persona.extracted_from, goal.extracted_from)
                ]

                stories.append(self.create_story_from_persona_goal(persona, goal, contexts, constraints))
                stories.extend(
                    self.create_story_from_pain_point(persona, pain_point, goal, index, constraints)
                    for index, pain_point in enumerate(persona.pain_points)
                )

        stories.extend(self.generate_technical_stories(info.constraints))
        return self.deduplicate_stories(stories)

    def generate_epics(self, stories: list[UserStory], info: ExtractedInformation) -> list[Epic]:
        """
        Group stories into epics.

        Returns:
            Epics ordered by priority, then by number of stories
        """
        epics = [
            self.create_epic_from_stories(theme, grouped, info)
            for theme, grouped in self.group_stories_by_theme(stories).items()
        ]

        for goal in info.goals:
            if goal.priority != Level.HIGH:
                continue
            related = [story for story in stories if goal.id in story.related_goals]
            if not related:
                continue
            if any(goal.id in epic.related_goals for epic in epics):
                continue
            epics.append(self.create_epic_from_goal(goal, related, info))

        return self.prioritize_epics(epics)

    def generate_content(self, info: ExtractedInformation, now: Optional[datetime] = None) -> GeneratedContent:
        stories = self.generate_user_stories(info)
        epics = self.generate_epics(stories, info)
        logger.info(
            "Generated content",
            stories=len(stories),
            epics=len(epics),
        )
        return GeneratedContent(
            user_stories=stories,
            epics=epics,
            last_generated=now or datetime.utcnow(),
            generation_notes=self.generate_notes(stories, epics, info),
        )

    # -------------------------------------------------------------------------
    # Stories
    # -------------------------------------------------------------------------

    def create_story_from_persona_goal(
        self,
        persona: UserPersona,
        goal: ProjectGoal,
        contexts: list[BusinessContext],
        constraints: list[Constraint],
    ) -> UserStory:
        context_info = f" in the context of {contexts[0].title}" if contexts else ""
        return UserStory(
            id=f"story-{persona.id}-{goal.id}",
            title=f"{persona.role} - {goal.description[:TITLE_EXCERPT_LENGTH]}...",
            description=f"Enable {persona.role.lower()} to {goal.description.lower()}",
            as_a=persona.role,
            i_want=f"be able to {goal.description.lower()}{context_info}",
            so_that=self._so_that(goal, persona),
            acceptance_criteria=self.generate_acceptance_criteria(goal, persona, constraints),
            priority=goal.priority,
            estimated_effort=GOAL_EFFORT.get(goal.priority, StoryEffort.S),
            tags=[goal.type] + [CONTEXT_TAGS.get(context.category, "business") for context in contexts],
            related_personas=[persona.id],
            related_goals=[goal.id],
            constraints=[constraint.id for constraint in constraints],
            created_from=[
                *persona.extracted_from,
                *goal.extracted_from,
                *(source for context in contexts for source in context.extracted_from),
            ],
            status=ContentStatus.DRAFT,
        )

    @staticmethod
    def _so_that(goal: ProjectGoal, persona: UserPersona) -> str:
        if goal.metrics:
            return f"I can achieve {goal.metrics[0].lower()}"
        if persona.goals:
            return f"I can {persona.goals[0].lower()}"
        return "I can work more effectively"

    @staticmethod
    def create_story_from_pain_point(
        persona: UserPersona,
        pain_point: str,
        goal: ProjectGoal,
        index: int,
        constraints: list[Constraint],
    ) -> UserStory:
        return UserStory(
            id=f"story-pain-{persona.id}-{index}",
            title=f"Fix: {pain_point[:TITLE_EXCERPT_LENGTH]}...",
            description=f"Resolve pain point: {pain_point}",
            as_a=persona.role,
            i_want=f"address the issue where {pain_point.lower()}",
            so_that=f"I can work more effectively and {goal.description.lower()}",
            acceptance_criteria=[
                AcceptanceCriteria(
                    id=f"ac-pain-{persona.id}",
                    description=f"Resolve or significantly reduce: {pain_point.lower()}",
                    priority=CriteriaPriority.MUST,
                ),
                AcceptanceCriteria(
                    id=f"ac-pain-validation-{persona.id}",
                    description=f"{persona.role} can validate the improvement",
                    priority=CriteriaPriority.SHOULD,
                ),
            ],
            priority=Level.MEDIUM,
            estimated_effort=StoryEffort.M,
            tags=["pain-point", "improvement"],
            related_personas=[persona.id],
            related_goals=[goal.id],
            constraints=[constraint.id for constraint in constraints],
            created_from=list(persona.extracted_from),
        )

    @staticmethod
    def generate_technical_stories(constraints: list[Constraint]) -> list[UserStory]:
        stories = []
        for constraint in constraints:
            if constraint.type != ConstraintType.TECHNICAL:
                continue
            critical = constraint.severity == Severity.CRITICAL
            stories.append(
                UserStory(
                    id=f"story-tech-{constraint.id}",
                    title=f"Technical: {constraint.description[:TITLE_EXCERPT_LENGTH]}...",
                    description=f"Address technical constraint: {constraint.description}",
                    as_a="developer",
                    i_want=f"ensure the system {constraint.description.lower()}",
                    so_that="the solution meets technical requirements",
                    acceptance_criteria=[
                        AcceptanceCriteria(
                            id=f"ac-tech-{constraint.id}-1",
                            description=constraint.description,
                            priority=CriteriaPriority.MUST,
                        )
                    ],
                    priority=Level.HIGH if critical else Level.MEDIUM,
                    estimated_effort=StoryEffort.L if critical else StoryEffort.M,
                    tags=["technical", "constraint"],
                    constraints=[constraint.id],
                    created_from=list(constraint.extracted_from),
                )
            )
        return stories

    @staticmethod
    def generate_acceptance_criteria(
        goal: ProjectGoal,
        persona: UserPersona,
        constraints: list[Constraint],
    ) -> list[AcceptanceCriteria]:
        criteria = [
            AcceptanceCriteria(
                id=f"ac-{goal.id}-primary",
                description=f"Successfully {goal.description.lower()}",
                priority=CriteriaPriority.MUST,
                testable=goal.measurable,
            )
        ]
        criteria.extend(
            AcceptanceCriteria(
                id=f"ac-{goal.id}-behavior-{index}",
                description=f"Support {behavior.lower()}",
                priority=CriteriaPriority.SHOULD,
            )
            for index, behavior in enumerate(persona.behaviors)
        )
        criteria.extend(
            AcceptanceCriteria(
                id=f"ac-{goal.id}-constraint-{constraint.id}",
                description=f"Comply with {constraint.description.lower()}",
                priority=(
                    CriteriaPriority.MUST if constraint.severity == Severity.CRITICAL else CriteriaPriority.SHOULD
                ),
            )
            for constraint in constraints
        )
        return criteria

    @staticmethod
    def deduplicate_stories(stories: list[UserStory]) -> list[UserStory]:
        seen: set[tuple[str, str, str]] = set()
        unique = []
        for story in stories:
            key = (story.as_a, story.i_want, story.so_that)
            if key in seen:
                continue
            seen.add(key)
            unique.append(story)
        return unique

    # -------------------------------------------------------------------------
    # Epics
    # -------------------------------------------------------------------------

    @staticmethod
    def group_stories_by_theme(stories: list[UserStory]) -> dict[str, list[UserStory]]:
        groups: dict[str, list[UserStory]] = {}
        for story in stories:
            groups.setdefault(theme_for_story(story), []).append(story)
        return groups

    def create_epic_from_stories(
        self, theme: str, stories: list[UserStory], info: ExtractedInformation
    ) -> Epic:
        goal_ids = _unique(goal_id for story in stories for goal_id in story.related_goals)
        related_goals = [goal for goal in info.goals if goal.id in goal_ids]

        slug = re.sub(r"\s+", "-", theme.lower())
        return Epic(
            id=f"epic-{slug}",
            title=theme,
            description=f"Comprehensive {theme.lower()} functionality",
            goal=f"Deliver comprehensive {theme.lower()} capabilities",
            business_value=self.business_value_from_goals(related_goals),
            user_stories=[story.id for story in stories],
            priority=determine_epic_priority(stories),
            theme=theme,
            estimated_effort=estimate_epic_effort(stories),
            related_personas=_unique(pid for story in stories for pid in story.related_personas),
            related_goals=goal_ids,
            constraints=_unique(cid for story in stories for cid in story.constraints),
            assumptions=self.find_relevant_assumptions(info.assumptions, related_goals),
            success_metrics=self.success_metrics(related_goals),
            created_from=_unique(source for story in stories for source in story.created_from),
        )

    def create_epic_from_goal(
        self, goal: ProjectGoal, stories: list[UserStory], info: ExtractedInformation
    ) -> Epic:
        return Epic(
            id=f"epic-goal-{goal.id}",
            title=goal.description,
            description=f"Epic focused on achieving: {goal.description}",
            goal=goal.description,
            business_value=", ".join(goal.metrics) or "Supports key business objective",
            user_stories=[story.id for story in stories],
            priority=goal.priority,
            theme=goal.type.capitalize(),
            estimated_effort=estimate_epic_effort(stories),
            related_personas=_unique(pid for story in stories for pid in story.related_personas),
            related_goals=[goal.id],
            constraints=_unique(cid for story in stories for cid in story.constraints),
            assumptions=self.find_relevant_assumptions(info.assumptions, [goal]),
            success_metrics=list(goal.metrics) or ["Goal completion"],
            created_from=[
                *goal.extracted_from,
                *(source for story in stories for source in story.created_from),
            ],
        )

    @staticmethod
    def business_value_from_goals(goals: list[ProjectGoal]) -> str:
        if not goals:
            return "Supports user experience improvement"
        high = [goal.description for goal in goals if goal.priority == Level.HIGH]
        if high:
            return f"Directly enables: {', '.join(high)}"
        return f"Supports: {', '.join(goal.description for goal in goals)}"

    @staticmethod
    def success_metrics(goals: list[ProjectGoal]) -> list[str]:
        metrics: list[str] = []
        for goal in goals:
            if goal.metrics:
                metrics.extend(goal.metrics)
            elif goal.measurable:
                metrics.append(f"{goal.description} completion rate")
        return metrics or ["User satisfaction improvement"]

    @staticmethod
    def find_relevant_assumptions(assumptions: list[Assumption], goals: list[ProjectGoal]) -> list[str]:
        """Assumptions stated in the same messages as any of the goals."""
        sources = {source for goal in goals for source in goal.extracted_from}
        return [
            assumption.id
            for assumption in assumptions
            if any(source in sources for source in assumption.extracted_from)
        ]

    @staticmethod
    def prioritize_epics(epics: list[Epic]) -> list[Epic]:
        return sorted(
            epics,
            key=lambda epic: (-PRIORITY_RANK.get(epic.priority, 0), -len(epic.user_stories)),
        )

    @staticmethod
    def generate_notes(stories: list[UserStory], epics: list[Epic], info: ExtractedInformation) -> list[str]:
        notes = [
            f"Generated {len(stories)} user stories from {len(info.personas)} personas "
            f"and {len(info.goals)} goals",
            f"Created {len(epics)} epics to organize the stories",
        ]
        if info.assumptions:
            notes.append(f"Consider validating {len(info.assumptions)} assumptions before implementation")

        high_priority = sum(1 for story in stories if story.priority == Level.HIGH)
        if high_priority:
            notes.append(f"{high_priority} high-priority stories identified for immediate attention")
        return notes
