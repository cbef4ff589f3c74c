"""
Adaptive Prep Engine

Learner-facing session engine of an adaptive exam-preparation tutor:
topic selection, the five-phase learning walkthrough, the MCQ drill, and
resumable progress persistence.
"""

__version__ = "0.1.0"
