"""
Unit tests for user story and epic generation.
"""

import pytest

from storycraft.domain.enhanced_proposal import (
    Assumption,
    BusinessContext,
    Constraint,
    Epic,
    ExtractedInformation,
    ProjectGoal,
    UserPersona,
    UserStory,
)
from storycraft.services.story_epic_generation import (
    StoryEpicGenerationService,
    determine_epic_priority,
    estimate_epic_effort,
    theme_for_story,
)


@pytest.fixture
def service() -> StoryEpicGenerationService:
    return StoryEpicGenerationService()


@pytest.fixture
def info() -> ExtractedInformation:
    return ExtractedInformation(
        personas=[
            UserPersona(
                id="persona-1",
                name="End User",
                role="End User",
                description="our users shop on mobile",
                pain_points=["Checkout is slow"],
                goals=["Wants to improve"],
                behaviors=["use behavior pattern identified"],
                extracted_from=["m1"],
            )
        ],
        contexts=[
            BusinessContext(
                id="context-1",
                category="technology",
                title="Technology Context",
                description="the platform is old",
                extracted_from=["m1"],
            )
        ],
        goals=[
            ProjectGoal(
                id="goal-1",
                type="business",
                description="Increase conversion",
                priority="high",
                measurable=True,
                metrics=["conversion"],
                extracted_from=["m1"],
            )
        ],
        constraints=[
            Constraint(
                id="constraint-1",
                type="technical",
                description="Must run on legacy servers",
                severity="critical",
                extracted_from=["m2"],
            )
        ],
        assumptions=[
            Assumption(id="assumption-1", category="user", description="users prefer mobile", extracted_from=["m1"])
        ],
    )


def make_story(story_id: str, priority: str = "medium", tags: list[str] | None = None, as_a: str = "Analyst") -> UserStory:
    return UserStory(
        id=story_id,
        title="t",
        description="d",
        as_a=as_a,
        i_want="w",
        so_that="s",
        priority=priority,
        tags=tags or [],
    )


def test_persona_goal_story(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    stories = service.generate_user_stories(info)
    story = stories[0]

    assert story.id == "story-persona-1-goal-1"
    assert story.title == "End User - Increase conversion..."
    assert story.as_a == "End User"
    assert story.i_want == "be able to increase conversion in the context of Technology Context"
    assert story.so_that == "I can achieve conversion"
    assert story.priority == "high"
    assert story.estimated_effort == "l"
    assert story.tags == ["business", "technical"]
    assert story.constraints == []
    assert [criterion.id for criterion in story.acceptance_criteria] == [
        "ac-goal-1-primary",
        "ac-goal-1-behavior-0",
    ]
    assert story.acceptance_criteria[0].testable


def test_pain_point_and_technical_stories(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    stories = service.generate_user_stories(info)
    assert [story.id for story in stories] == [
        "story-persona-1-goal-1",
        "story-pain-persona-1-0",
        "story-tech-constraint-1",
    ]

    pain = stories[1]
    assert pain.i_want == "address the issue where checkout is slow"
    assert pain.so_that == "I can work more effectively and increase conversion"
    assert pain.tags == ["pain-point", "improvement"]

    technical = stories[2]
    assert technical.as_a == "developer"
    assert technical.priority == "high"
    assert technical.estimated_effort == "l"
    assert technical.constraints == ["constraint-1"]


def test_so_that_falls_back(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    persona = info.personas[0]
    goal = info.goals[0].model_copy(update={"metrics": []})

    assert service._so_that(goal, persona) == "I can wants to improve"
    assert service._so_that(goal, persona.model_copy(update={"goals": []})) == "I can work more effectively"


def test_constraints_from_same_message_become_criteria(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    info.constraints[0].extracted_from = ["m1"]
    story = service.generate_user_stories(info)[0]

    assert story.constraints == ["constraint-1"]
    criterion = story.acceptance_criteria[-1]
    assert criterion.description == "Comply with must run on legacy servers"
    assert criterion.priority == "must"


def test_duplicate_stories_are_dropped(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    twin = info.personas[0].model_copy(update={"id": "persona-2", "pain_points": []})
    info.personas.append(twin)

    stories = service.generate_user_stories(info)

    assert "story-persona-2-goal-1" not in [story.id for story in stories]


def test_themes() -> None:
    assert theme_for_story(make_story("s", tags=["security", "technical"])) == "Technical Foundation"
    assert theme_for_story(make_story("s", tags=["reporting"])) == "Reporting & Analytics"
    assert theme_for_story(make_story("s", as_a="System Admin")) == "Administration"
    assert theme_for_story(make_story("s", as_a="Project Manager")) == "Management & Oversight"
    assert theme_for_story(make_story("s")) == "General"


def test_epic_effort_and_priority() -> None:
    assert estimate_epic_effort([make_story("s")] * 3) == "small"
    assert estimate_epic_effort([make_story("s")] * 4) == "medium"
    assert estimate_epic_effort([make_story("s")] * 12) == "large"
    assert estimate_epic_effort([make_story("s")] * 13) == "extra-large"

    assert determine_epic_priority([make_story("a", "high"), make_story("b", "high"), make_story("c")]) == "high"
    assert determine_epic_priority([make_story("a", "high"), make_story("b")]) == "low"
    assert determine_epic_priority([make_story("a", "medium"), make_story("b", "medium")]) == "medium"


def test_prioritize_epics_breaks_ties_by_story_count(service: StoryEpicGenerationService) -> None:
    def epic(epic_id: str, priority: str, story_count: int) -> Epic:
        return Epic(
            id=epic_id,
            title=epic_id,
            description="d",
            goal="g",
            business_value="v",
            theme="General",
            priority=priority,
            user_stories=[f"{epic_id}-story-{n}" for n in range(story_count)],
        )

    epics = [epic("small-high", "high", 1), epic("low", "low", 9), epic("big-high", "high", 4), epic("medium", "medium", 2)]

    ordered = service.prioritize_epics(epics)
    assert [e.id for e in ordered] == ["big-high", "small-high", "medium", "low"]


def test_epics_group_stories_by_theme(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    stories = service.generate_user_stories(info)
    epics = service.generate_epics(stories, info)

    assert [epic.id for epic in epics] == ["epic-technical-foundation", "epic-user-experience"]

    technical = epics[0]
    assert technical.user_stories == ["story-persona-1-goal-1", "story-tech-constraint-1"]
    assert technical.priority == "high"
    assert technical.estimated_effort == "small"
    assert technical.business_value == "Directly enables: Increase conversion"
    assert technical.success_metrics == ["conversion"]
    assert technical.assumptions == ["assumption-1"]
    assert technical.constraints == ["constraint-1"]

    experience = epics[1]
    assert experience.user_stories == ["story-pain-persona-1-0"]
    assert experience.priority == "medium"


def test_epic_from_goal(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    goal = info.goals[0]
    story = make_story("story-x")
    epic = service.create_epic_from_goal(goal, [story], info)

    assert epic.id == "epic-goal-goal-1"
    assert epic.title == "Increase conversion"
    assert epic.theme == "Business"
    assert epic.business_value == "conversion"
    assert epic.success_metrics == ["conversion"]
    assert epic.assumptions == ["assumption-1"]


def test_value_and_metric_fallbacks(service: StoryEpicGenerationService) -> None:
    assert service.business_value_from_goals([]) == "Supports user experience improvement"
    low = ProjectGoal(id="g", type="user", description="Be friendly", measurable=True)
    assert service.business_value_from_goals([low]) == "Supports: Be friendly"
    assert service.success_metrics([low]) == ["Be friendly completion rate"]
    assert service.success_metrics([]) == ["User satisfaction improvement"]


def test_generate_content_notes(service: StoryEpicGenerationService, info: ExtractedInformation) -> None:
    content = service.generate_content(info)

    assert len(content.user_stories) == 3
    assert len(content.epics) == 2
    assert content.generation_notes == [
        "Generated 3 user stories from 1 personas and 1 goals",
        "Created 2 epics to organize the stories",
        "Consider validating 1 assumptions before implementation",
        "2 high-priority stories identified for immediate attention",
    ]


def test_empty_knowledge_base(service: StoryEpicGenerationService) -> None:
    content = service.generate_content(ExtractedInformation())
    assert content.user_stories == []
    assert content.epics == []
