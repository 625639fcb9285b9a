"""메시지 저장 전 콘텐츠 안전성 검사를 수행합니다."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from engagement.config import settings


@dataclass(frozen=True)
class SafetyResult:
    safe: bool
    reason: Optional[str] = None


class SafetyChecker:
    def __init__(self, patterns: Iterable[str] | None = None):
        source = settings.CHAT_UNSAFE_PATTERNS if patterns is None else patterns
        self._patterns = [re.compile(p, flags=re.IGNORECASE) for p in source]

    def check(self, text: str) -> SafetyResult:
        for pattern in self._patterns:
            if pattern.search(text or ""):
                return SafetyResult(safe=False, reason="내용에 부적절한 표현이 포함되어 있습니다.")
        return SafetyResult(safe=True)


def check_safety(text: str) -> SafetyResult:
    return SafetyChecker().check(text)
