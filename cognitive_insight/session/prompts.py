"""Spoken Korean phrases used by the interview."""

from __future__ import annotations

from .states import ProfileStage

PROFILE_PROMPTS = {
    ProfileStage.NAME: "테스트를 시작하겠습니다. 먼저 성함을 말씀해주세요.",
    ProfileStage.GENDER: "성별을 말씀해주세요. 예를 들어, 남성 또는 여성.",
    ProfileStage.AGE_GROUP: "연령대를 말씀해주세요. 예를 들어, 10대, 20대.",
}

NO_SPEECH_APOLOGY = "아무런 답변이 들리지 않았습니다. 다시 한 번 말씀해주시겠어요?"
TIMEOUT_APOLOGY = "답변 시간이 초과되었습니다. 다시 한 번 말씀해주시겠어요?"
LOW_CONFIDENCE_APOLOGY = (
    "죄송합니다, 답변이 명확하게 들리지 않았습니다. 다시 한 번 말씀해주시겠어요?"
)
NOT_UNDERSTOOD_APOLOGY = "죄송합니다, 잘 이해하지 못했어요. 다시 말씀해주세요."

PROFILE_REPEAT_ACK = "네, 다시 질문해 드릴게요."
QUESTION_REPEAT_ACK = "네, 질문을 다시 들려드릴게요."

QUESTION_SKIPPED = "답변이 없어 이 문항을 건너뛰겠습니다."
NO_ANSWER_EXPLANATION = "사용자가 답변하지 않았습니다."
EVALUATION_ERROR_EXPLANATION = "AI 평가 중 오류가 발생했습니다."

PERMISSION_REQUIRED = "마이크 사용 권한이 필요합니다."
PROFILE_EXHAUSTED = "음성 입력을 받는 데 실패하여 테스트를 중단합니다."
SESSION_CANCELLED = "session cancelled"
UNKNOWN_ERROR = "알 수 없는 오류가 발생했습니다."


def welcome(name: str, total_questions: int) -> str:
    return (
        f"{name}님, 반갑습니다. 지금부터 인지 능력 평가를 시작하겠습니다. "
        f"총 {total_questions}개의 문항이 제시됩니다."
    )


def closing(total_score: int) -> str:
    return (
        "모든 테스트가 완료되었습니다. 잠시 후 결과 페이지로 이동합니다. "
        f"총점은 {total_score}점 입니다."
    )


def failure(message: str) -> str:
    return f"오류가 발생했습니다: {message}"
