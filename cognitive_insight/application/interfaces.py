from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from cognitive_insight.domain.models import (
    Evaluation,
    Question,
    SessionSnapshot,
    TestResult,
)


class SpeechCapabilityInterface(ABC):
    """Contract for the component that owns the audio devices of one session"""

    @abstractmethod
    async def speak(self, text: str) -> None:
        ...

    @abstractmethod
    async def listen(
        self,
        timeout_seconds: float,
        grammar_hints: Optional[Sequence[str]] = None,
    ) -> str:
        ...

    @property
    @abstractmethod
    def is_speaking(self) -> bool:
        ...

    @property
    @abstractmethod
    def is_listening(self) -> bool:
        ...

    @abstractmethod
    def add_activity_listener(self, callback: Callable[[], None]) -> None:
        ...

    @abstractmethod
    async def aclose(self) -> None:
        ...


class PermissionProviderInterface(ABC):
    """Platform microphone permission contract"""

    @abstractmethod
    async def request_microphone_access(self) -> bool:
        ...


class QuestionBankInterface(ABC):
    """Source of the fixed question sequence for a session"""

    @abstractmethod
    def get_session_questions(self) -> List[Question]:
        ...

    @abstractmethod
    def get_all_questions(self) -> List[Question]:
        ...


class AnswerEvaluatorInterface(ABC):
    """Semantic answer scorer"""

    @abstractmethod
    async def evaluate(self, question: Question, transcript: str) -> Evaluation:
        ...


class ResultRepositoryInterface(ABC):
    """Persistence contract for completed test results"""

    @abstractmethod
    async def save(self, result: TestResult) -> None:
        ...

    @abstractmethod
    async def list_all(self) -> List[TestResult]:
        ...

    @abstractmethod
    async def get_by_id(self, result_id: str) -> Optional[TestResult]:
        ...

    @abstractmethod
    async def replace_all(self, results: Sequence[TestResult]) -> None:
        ...


class SessionObserverInterface(ABC):
    """Receives a fresh snapshot whenever something visible changes"""

    @abstractmethod
    def publish(self, snapshot: SessionSnapshot) -> None:
        ...
