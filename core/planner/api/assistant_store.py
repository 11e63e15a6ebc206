"""Shared assistant instance for API routes."""

from typing import Optional

from planner.engine.assistant import PlannerAssistant
from planner.engine.classifier import IntentClassifier
from planner.store.board_store import BoardStore

assistant: Optional[PlannerAssistant] = None


def get_assistant() -> PlannerAssistant:
    """Get or create the assistant instance."""
    global assistant
    if assistant is None:
        assistant = PlannerAssistant(store=BoardStore(), classifier=IntentClassifier())
    return assistant
