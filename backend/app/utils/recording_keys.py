"""녹화 오브젝트 키에서 차수/회차 정보를 추출합니다.

예) videos/64f0c2a9e4b0a1b2c3d4e5f6/17(홍길동)/session-3/part1.mp4
    -> batch_id=64f0c2a9e4b0a1b2c3d4e5f6, session_number=3
"""

import re
from dataclasses import dataclass
from typing import Optional

BATCH_ID_SEGMENT_RE = re.compile(r"(?:^|/)([0-9a-fA-F]{24})(?=/|$)")
SESSION_TOKEN_RE = re.compile(r"(?i:session)[-_](\d+)|Session (\d+)")
LEADING_DIGITS_RE = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class RecordingKey:
    key: str
    batch_id: str
    session_number: int

    @property
    def session_key(self) -> str:
        return session_lookup_key(self.batch_id, self.session_number)


def session_lookup_key(batch_id: str, session_number: int) -> str:
    return f"{batch_id}_{session_number}"


def is_folder_marker(key: str) -> bool:
    return not key or key.endswith("/")


def extract_batch_id(key: str) -> Optional[str]:
    matched = BATCH_ID_SEGMENT_RE.search(key or "")
    return matched.group(1).lower() if matched else None


def extract_session_number(key: str) -> int:
    matched = SESSION_TOKEN_RE.search(key or "")
    if not matched:
        return 1
    return int(matched.group(1) or matched.group(2))


def parse_recording_key(key: str) -> Optional[RecordingKey]:
    batch_id = extract_batch_id(key)
    if not batch_id:
        return None
    return RecordingKey(key=key, batch_id=batch_id, session_number=extract_session_number(key))


def parse_session_no(value) -> Optional[int]:
    """회차 표기("03-A", "12")의 앞자리 숫자. 숫자로 시작하지 않으면 None."""
    if value is None:
        return None
    matched = LEADING_DIGITS_RE.match(str(value))
    return int(matched.group(1)) if matched else None
