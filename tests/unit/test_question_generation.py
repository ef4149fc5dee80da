"""
Unit tests for question selection and readiness scoring.
"""

import random

import pytest

from storycraft.domain.enhanced_proposal import (
    Assumption,
    BusinessContext,
    Constraint,
    EnhancedProposalMessage,
    ExtractedInformation,
    ProjectGoal,
    QuestionGenerationContext,
    UserPersona,
)
from storycraft.services.question_generation import (
    CONTEXTUAL_QUESTIONS,
    EXPLORATORY_QUESTIONS,
    QUESTION_BANK,
    QuestionGenerationService,
)


@pytest.fixture
def service() -> QuestionGenerationService:
    return QuestionGenerationService(rng=random.Random(7), readiness_threshold=80, recent_window=6)


def personas(count: int) -> list[UserPersona]:
    return [UserPersona(id=f"p{i}", name=f"P{i}", role=f"Role {i}", description="d") for i in range(count)]


def contexts(count: int) -> list[BusinessContext]:
    return [
        BusinessContext(id=f"c{i}", category="market", title="Market Context", description="d")
        for i in range(count)
    ]


def goals(count: int) -> list[ProjectGoal]:
    return [ProjectGoal(id=f"g{i}", type="business", description=f"goal {i}") for i in range(count)]


def constraints(count: int) -> list[Constraint]:
    return [Constraint(id=f"k{i}", type="budget", description="d") for i in range(count)]


def assumptions(count: int) -> list[Assumption]:
    return [Assumption(id=f"a{i}", category="user", description="d") for i in range(count)]


def assistant_message(category: str) -> EnhancedProposalMessage:
    return EnhancedProposalMessage(id="ai-1", content="question", is_user=False, question_category=category)


def user_message(content: str) -> EnhancedProposalMessage:
    return EnhancedProposalMessage(id="u-1", content=content, is_user=True)


def test_question_bank_shape() -> None:
    assert len(QUESTION_BANK) == 22
    assert len({question.id for question in QUESTION_BANK}) == 22


def test_first_question_is_about_people(service: QuestionGenerationService) -> None:
    context = QuestionGenerationContext(existing_information=ExtractedInformation())
    question = service.generate_next_question(context)

    assert question is not None
    assert question.id == "persona-1"


def test_recently_asked_category_is_skipped(service: QuestionGenerationService) -> None:
    context = QuestionGenerationContext(
        existing_information=ExtractedInformation(),
        conversation_history=[assistant_message("persona")],
    )
    question = service.generate_next_question(context)

    assert question is not None
    assert question.id == "context-1"


def test_old_questions_fall_out_of_the_window(service: QuestionGenerationService) -> None:
    history = [assistant_message("persona")] + [user_message("ok") for _ in range(6)]
    context = QuestionGenerationContext(existing_information=ExtractedInformation(), conversation_history=history)

    assert not service.was_recently_asked(QUESTION_BANK[0], history)
    assert service.generate_next_question(context).id == "persona-1"


def test_prerequisites_gate_questions(service: QuestionGenerationService) -> None:
    goals_first = service.get_question("goals-1")
    assert not service.are_prerequisites_met(goals_first, ExtractedInformation())
    assert service.are_prerequisites_met(goals_first, ExtractedInformation(contexts=contexts(1)))


def test_validation_needs_goals_and_assumptions(service: QuestionGenerationService) -> None:
    assert not service.is_category_needed("validation", ExtractedInformation(goals=goals(1)), [])
    info = ExtractedInformation(goals=goals(1), assumptions=assumptions(1))
    assert service.is_category_needed("validation", info, [])


def test_missing_information_forces_a_category(service: QuestionGenerationService) -> None:
    info = ExtractedInformation(personas=personas(2))
    assert not service.is_category_needed("persona", info, [])
    assert service.is_category_needed("persona", info, ["persona"])


def test_nothing_left_to_ask(service: QuestionGenerationService) -> None:
    info = ExtractedInformation(
        personas=personas(2),
        contexts=contexts(3),
        goals=goals(2),
        constraints=constraints(2),
        assumptions=assumptions(2),
    )
    history = [assistant_message("validation")]
    context = QuestionGenerationContext(existing_information=info, conversation_history=history)

    assert service.generate_next_question(context) is None


def test_urgent_needs_order() -> None:
    assert QuestionGenerationService.analyze_urgent_needs(ExtractedInformation()) == ["persona", "context"]

    info = ExtractedInformation(personas=personas(1), contexts=contexts(1), goals=goals(2))
    assert QuestionGenerationService.analyze_urgent_needs(info) == ["constraints", "assumptions"]


def test_contextual_question_follows_the_conversation(service: QuestionGenerationService) -> None:
    about_people = [user_message("Our customers are unhappy")]
    about_business = [user_message("The company is growing fast")]

    assert service.craft_contextual_question("context", about_people) == CONTEXTUAL_QUESTIONS["context"][0]
    assert service.craft_contextual_question("context", about_business) == CONTEXTUAL_QUESTIONS["context"][1]
    assert service.craft_contextual_question("context", []) in CONTEXTUAL_QUESTIONS["context"]
    assert service.craft_contextual_question("validation", []) == "Tell me more about validation."


def test_smart_question_falls_back_to_exploration(service: QuestionGenerationService) -> None:
    info = ExtractedInformation(
        personas=personas(1),
        contexts=contexts(1),
        goals=goals(1),
        constraints=constraints(1),
    )
    context = QuestionGenerationContext(existing_information=info)
    assert service.generate_smart_question(context) in EXPLORATORY_QUESTIONS


def test_follow_up_depends_on_answer_detail() -> None:
    question = QUESTION_BANK[0]
    short = "Mostly sales staff."
    detailed = " ".join(["word"] * 55) + " specifically the regional managers"

    assert QuestionGenerationService.generate_follow_up(question, short) == question.follow_up_questions[0]
    assert QuestionGenerationService.generate_follow_up(question, detailed) == question.follow_up_questions[1]


def test_readiness_scoring(service: QuestionGenerationService) -> None:
    empty = service.assess_readiness_for_next_phase(ExtractedInformation())
    assert empty.completion_percentage == 0
    assert not empty.ready
    assert empty.missing_categories == ["personas", "contexts", "goals", "constraints", "assumptions"]

    partial = ExtractedInformation(personas=personas(2), contexts=contexts(3), goals=goals(2))
    assessment = service.assess_readiness_for_next_phase(partial)
    assert assessment.completion_percentage == 70
    assert not assessment.ready

    partial.constraints = constraints(1)
    assessment = service.assess_readiness_for_next_phase(partial)
    assert assessment.completion_percentage == 80
    assert assessment.ready
    assert assessment.missing_categories == ["constraints", "assumptions"]


def test_extra_items_do_not_inflate_the_score(service: QuestionGenerationService) -> None:
    info = ExtractedInformation(personas=personas(10))
    assert service.assess_readiness_for_next_phase(info).completion_percentage == 20


def test_phase_transition_messages(service: QuestionGenerationService) -> None:
    assert service.generate_phase_transition_message(85, []).startswith("Great! I think we have enough")

    message = service.generate_phase_transition_message(40, ["goals", "constraints"])
    assert "(40% complete)" in message
    assert "about goals, constraints before" in message
