"""Service layer helpers for external integrations."""

from .evaluator import BedrockAnswerEvaluator, EvaluationError, get_answer_evaluator
from .question_bank import JsonQuestionBank, QuestionBankError, get_question_bank
from .speech import ListenError, SpeechCapability, SpeechError, create_speech_capability
from .transcribe import (
    NoSpeechDetected,
    TranscribeService,
    TranscriptionError,
    TranscriptionResult,
)

__all__ = [
    "BedrockAnswerEvaluator",
    "EvaluationError",
    "get_answer_evaluator",
    "JsonQuestionBank",
    "QuestionBankError",
    "get_question_bank",
    "SpeechCapability",
    "SpeechError",
    "ListenError",
    "create_speech_capability",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "NoSpeechDetected",
]
