"""
Answer ledger: the answers a student has entered during one session
"""
import threading
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from examportal.core.exceptions import SessionNotActive


class AnswerLedger:
    """Question id -> answer string. Last write wins, no history kept.

    `is_active` reports whether the owning session currently accepts
    answers. Once frozen the ledger rejects every mutation, regardless of
    what the owner reports.
    """

    def __init__(self, is_active: Callable[[], bool] = None):
        self._is_active = is_active or (lambda: True)
        self._answers: Dict[str, str] = {}
        self._snapshot: Optional[Mapping[str, str]] = None
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        return self._snapshot is not None

    def set_answer(self, question_id: str, answer: str):
        with self._lock:
            if self._snapshot is not None or not self._is_active():
                raise SessionNotActive(f"Cannot record an answer for {question_id!r}: session is not active")
            self._answers[question_id] = answer

    def get_answer(self, question_id: str) -> Optional[str]:
        """Stored answer, or None when the question is unanswered"""
        return self._answers.get(question_id)

    def freeze(self) -> Mapping[str, str]:
        """Return the read-only snapshot, freezing the ledger on first call"""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = MappingProxyType(dict(self._answers))
            return self._snapshot

    def as_dict(self) -> Dict[str, str]:
        return dict(self._answers)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)
