"""Planner - conversational front-end for boards, buckets, tasks and members."""

__version__ = "0.1.0"
