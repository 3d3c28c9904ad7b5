"""Static question catalogue loaded from a JSON resource."""

from __future__ import annotations

import json
import logging
import random
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from cognitive_insight.application.interfaces import QuestionBankInterface
from cognitive_insight.config.settings import SessionConfig, settings
from cognitive_insight.domain.models import Question

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_FILE = Path(__file__).resolve().parent.parent / "resources" / "questions.json"

_QUESTION_LIST = TypeAdapter(List[Question])


class QuestionBankError(RuntimeError):
    """Raised when the catalogue is missing, malformed or too small."""


class JsonQuestionBank(QuestionBankInterface):
    """Serve a fixed-length question sequence from the catalogue."""

    def __init__(
        self,
        path: Path = DEFAULT_QUESTION_FILE,
        *,
        total_questions: int = 10,
        shuffle: bool = False,
        seed: Optional[int] = None,
    ) -> None:
        self._catalogue = _load_catalogue(Path(path))
        if total_questions > len(self._catalogue):
            raise QuestionBankError(
                f"Catalogue holds {len(self._catalogue)} questions; "
                f"{total_questions} are required per session."
            )
        self._total_questions = total_questions
        self._shuffle = shuffle
        self._random = random.Random(seed)

    @property
    def total_questions(self) -> int:
        return self._total_questions

    def get_session_questions(self) -> List[Question]:
        if not self._shuffle:
            return list(self._catalogue[: self._total_questions])
        chosen = sorted(
            self._random.sample(range(len(self._catalogue)), self._total_questions)
        )
        return [self._catalogue[position] for position in chosen]

    def get_all_questions(self) -> List[Question]:
        return list(self._catalogue)


def _load_catalogue(path: Path) -> List[Question]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise QuestionBankError(f"Cannot read question catalogue {path}: {exc}") from exc
    try:
        questions = _QUESTION_LIST.validate_python(raw)
    except ValidationError as exc:
        raise QuestionBankError(f"Invalid question catalogue {path}: {exc}") from exc

    seen: set[int] = set()
    for question in questions:
        if question.id in seen:
            raise QuestionBankError(f"Duplicate question id {question.id} in {path}.")
        seen.add(question.id)
    logger.debug("Loaded %s questions from %s", len(questions), path)
    return questions


def build_question_bank(config: SessionConfig) -> JsonQuestionBank:
    return JsonQuestionBank(
        Path(config.question_file) if config.question_file else DEFAULT_QUESTION_FILE,
        total_questions=config.total_questions,
        shuffle=config.shuffle_questions,
        seed=config.shuffle_seed,
    )


@lru_cache
def get_question_bank() -> JsonQuestionBank:
    """Return the process-wide question bank built from settings."""

    return build_question_bank(settings.session)


__all__ = [
    "DEFAULT_QUESTION_FILE",
    "JsonQuestionBank",
    "QuestionBankError",
    "build_question_bank",
    "get_question_bank",
]
