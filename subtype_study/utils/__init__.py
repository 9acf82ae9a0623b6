"""
Utility functions for the subtype study.
"""

from .parallel import TaskOutcome, outcomes_to_frame, run_tasks

__all__ = [
    'TaskOutcome',
    'outcomes_to_frame',
    'run_tasks'
]
