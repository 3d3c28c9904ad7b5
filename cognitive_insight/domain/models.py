from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

NO_ANSWER = "답변 없음"
"""Transcript sentinel recorded when a question went unanswered."""


class Gender(str, Enum):
    MALE = "남성"
    FEMALE = "여성"
    OTHER = "기타"


class AgeGroup(str, Enum):
    TEENS = "10대"
    TWENTIES = "20대"
    THIRTIES = "30대"
    FORTIES = "40대"
    FIFTIES = "50대"
    SIXTIES = "60대"
    SEVENTIES_PLUS = "70대 이상"


class QuestionType(str, Enum):
    GENERAL = "GENERAL"
    PICTURE_NAMING = "BOSTON_NAMING"


class Question(BaseModel):
    """One item of the question bank."""

    id: int
    category: str
    type: QuestionType = QuestionType.GENERAL
    text: str
    image: Optional[str] = None
    expected_answer: str = Field(alias="correctAnswer")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class UserProfile(BaseModel):
    """Domain model for the interviewed person"""

    name: str
    gender: Gender
    age_group: AgeGroup = Field(alias="ageGroup")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


@dataclass
class ProfileDraft:
    """Profile fields collected so far; frozen into a UserProfile once complete."""

    name: str | None = None
    gender: Gender | None = None
    age_group: AgeGroup | None = None

    @property
    def is_complete(self) -> bool:
        return None not in (self.name, self.gender, self.age_group)

    def complete(self) -> UserProfile:
        if not self.is_complete:
            raise ValueError("User profile is missing one or more fields.")
        return UserProfile(name=self.name, gender=self.gender, age_group=self.age_group)


class Evaluation(BaseModel):
    """Verdict returned by the answer evaluator."""

    score: int = Field(ge=0, le=1)
    explanation: str

    model_config = ConfigDict(frozen=True)


class Answer(BaseModel):
    """Recorded answer for a single question."""

    question_id: int = Field(alias="questionId")
    transcript: str = Field(alias="userAnswer")
    score: int = Field(ge=0, le=1)
    explanation: str

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TestResult(BaseModel):
    """Immutable outcome of a completed interview session."""

    __test__: ClassVar[bool] = False

    id: str
    user_profile: UserProfile = Field(alias="userInfo")
    answers: tuple[Answer, ...]
    total_score: int = Field(alias="totalScore", ge=0)
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "timestamp", "created_at"),
        serialization_alias="createdAt",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def check_total(self) -> "TestResult":
        expected = sum(answer.score for answer in self.answers)
        if self.total_score != expected:
            raise ValueError(
                f"totalScore {self.total_score} does not match the answer scores ({expected})."
            )
        return self


class SessionSnapshot(BaseModel):
    """Everything the presentation layer needs to render the current session."""

    session_id: str
    state: str
    stage: Optional[str] = None
    question_index: Optional[int] = None
    total_questions: Optional[int] = None
    question: Optional[dict[str, Any]] = None
    transcript: str = ""
    is_speaking: bool = False
    is_listening: bool = False
    answers_recorded: int = 0
    result_id: Optional[str] = None
    message: Optional[str] = None
    terminal: bool = False


__all__ = [
    "NO_ANSWER",
    "AgeGroup",
    "Answer",
    "Evaluation",
    "Gender",
    "ProfileDraft",
    "Question",
    "QuestionType",
    "SessionSnapshot",
    "TestResult",
    "UserProfile",
]
