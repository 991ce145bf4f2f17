"""Review layer — feedback models, prompt assembly, positioning, reconciliation."""

from mranchor.review.discussions import discussions_to_feedback, parse_ai_response
from mranchor.review.models import (
    AIFeedbackItem,
    GitLabPosition,
    ResolutionKind,
    ReviewFeedback,
    Severity,
    ShaTriple,
)
from mranchor.review.prompt import PreparedReview, build_prompt, prepare_review
from mranchor.review.reconciler import ReviewView, navigation_order, reconcile
from mranchor.review.resolver import PositionResolver, resolve_feedback

__all__ = [
    "AIFeedbackItem",
    "GitLabPosition",
    "PositionResolver",
    "PreparedReview",
    "ResolutionKind",
    "ReviewFeedback",
    "ReviewView",
    "Severity",
    "ShaTriple",
    "build_prompt",
    "discussions_to_feedback",
    "navigation_order",
    "parse_ai_response",
    "prepare_review",
    "reconcile",
    "resolve_feedback",
]
