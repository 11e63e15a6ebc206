"""Engine module - intent resolution, delete confirmation and undo."""

from planner.engine.assistant import PlannerAssistant
from planner.engine.classifier import ClassifierHint, IntentClassifier
from planner.engine.gate import ConfirmationGate
from planner.engine.intents import Intent, IntentResolver, ResolvedIntent
from planner.engine.snapshot import Snapshot, SnapshotExecutor

__all__ = [
    "PlannerAssistant",
    "ClassifierHint",
    "IntentClassifier",
    "ConfirmationGate",
    "Intent",
    "IntentResolver",
    "ResolvedIntent",
    "Snapshot",
    "SnapshotExecutor",
]
