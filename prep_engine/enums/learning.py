"""
Learning Session Enums

Defines enums for the five-phase topic walkthrough, bookmarkable
element types, transcript roles, and session events.
"""

from enum import Enum, IntEnum


class LearningPhase(IntEnum):
    """
    Phases a learner moves through for every topic.

    State transitions (forward only, one step at a time):
    - SUMMARY → CONCEPTS → GAPS → MEDIA → QUIZ

    The integer values are the persisted `last_phase` column.
    QUIZ is the only phase with sub-state (question cursor, completion).
    """

    SUMMARY = 0  # Final summary of the topic
    CONCEPTS = 1  # Buzzword flashcards
    GAPS = 2  # Recursive learning gaps and gap tags
    MEDIA = 3  # High-yield images and recommended videos
    QUIZ = 4  # MCQ drill

    @property
    def is_display(self) -> bool:
        """Phases 0-3 only render content and carry no sub-state."""
        return self is not LearningPhase.QUIZ


class BookmarkElementType(str, Enum):
    """
    Kinds of elements a learner can bookmark from any phase.
    """

    FLASHCARD = "flashcard"
    BUZZWORD = "buzzword"
    LEARNING_GAP = "learning_gap"
    TAG = "tag"
    IMAGE = "image"
    VIDEO = "video"
    MCQ = "mcq"


class MessageRole(str, Enum):
    """
    Author of a quiz transcript message.
    """

    TUTOR = "tutor"
    STUDENT = "student"


class SessionEventType(str, Enum):
    """
    Events published on the session event stream.
    """

    TOPIC_LOADED = "topic_loaded"
    PHASE_ADVANCED = "phase_advanced"
    ANSWER_RECORDED = "answer_recorded"
    QUIZ_COMPLETED = "quiz_completed"
    TOPIC_ADVANCED = "topic_advanced"
    SUBJECT_EXHAUSTED = "subject_exhausted"
    BOOKMARK_TOGGLED = "bookmark_toggled"
