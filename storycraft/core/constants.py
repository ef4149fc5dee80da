"""
System-wide constants for StoryCraft.
"""

from enum import Enum


# =============================================================================
# Users
# =============================================================================


class UserRole(str, Enum):
    """Roles a user can hold."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"
    EDITOR = "editor"
    VIEWER = "viewer"


# =============================================================================
# Saved proposals
# =============================================================================


class ProposalStatus(str, Enum):
    """Proposal lifecycle states."""

    DRAFT = "draft"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ProposalSortBy(str, Enum):
    """Fields a proposal listing can be sorted by."""

    TITLE = "title"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    STATUS = "status"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


# =============================================================================
# Guided workflow
# =============================================================================


class WorkflowPhaseId(str, Enum):
    """Phases of the guided proposal workflow, in order."""

    INFORMATION_GATHERING = "information-gathering"
    STORY_FORMATION = "story-formation"
    EPIC_CREATION = "epic-creation"
    REFINEMENT = "refinement"


class PhaseStatus(str, Enum):
    """Status of a single workflow phase."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class WorkflowType(str, Enum):
    """Kind of artifact a guided proposal is aimed at."""

    STORY = "story"
    EPIC = "epic"
    FEATURE = "feature"
    PROJECT = "project"


class QuestionCategory(str, Enum):
    """Categories of the information gathering question bank."""

    PERSONA = "persona"
    CONTEXT = "context"
    GOALS = "goals"
    CONSTRAINTS = "constraints"
    ASSUMPTIONS = "assumptions"
    VALIDATION = "validation"


# =============================================================================
# Extracted information
# =============================================================================


class ContextCategory(str, Enum):
    """Business context categories."""

    MARKET = "market"
    TECHNOLOGY = "technology"
    ORGANIZATIONAL = "organizational"
    REGULATORY = "regulatory"
    COMPETITIVE = "competitive"


class GoalType(str, Enum):
    """Project goal types."""

    BUSINESS = "business"
    USER = "user"
    TECHNICAL = "technical"
    OPERATIONAL = "operational"


class Level(str, Enum):
    """Three-step scale used for impact, priority and confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConstraintType(str, Enum):
    """Constraint types."""

    BUDGET = "budget"
    TIMELINE = "timeline"
    TECHNICAL = "technical"
    REGULATORY = "regulatory"
    RESOURCE = "resource"


class Severity(str, Enum):
    """Constraint severity."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    MINOR = "minor"


class AssumptionCategory(str, Enum):
    """Assumption categories."""

    BUSINESS = "business"
    TECHNICAL = "technical"
    USER = "user"
    MARKET = "market"


# =============================================================================
# Generated content
# =============================================================================


class CriteriaPriority(str, Enum):
    """MoSCoW-style acceptance criteria priority."""

    MUST = "must"
    SHOULD = "should"
    COULD = "could"


class StoryEffort(str, Enum):
    """T-shirt size estimate for a user story."""

    XS = "xs"
    S = "s"
    M = "m"
    L = "l"
    XL = "xl"


class EpicEffort(str, Enum):
    """Size estimate for an epic."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EXTRA_LARGE = "extra-large"


class ContentStatus(str, Enum):
    """Review status of a generated story or epic."""

    DRAFT = "draft"
    REFINED = "refined"
    APPROVED = "approved"


# =============================================================================
# API
# =============================================================================

API_PREFIX = "/api"
AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "
