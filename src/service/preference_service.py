"""출력 설정의 영속 저장소 (키-값 테이블, 네 개의 문자열 키).

스키마 버전 관리는 없다. 저장된 값이 현재 검증 규칙에 맞지 않으면
그 키만 기본값으로 되돌린다.
"""

from loguru import logger
from sqlmodel import Session, select

from core.exceptions import InvalidPreference
from model.preference import STORAGE_KEYS, OutputPreferences, PreferenceEntry


def load_preferences(session: Session) -> OutputPreferences:
    stored = {entry.key: entry.value for entry in session.exec(select(PreferenceEntry)).all()}
    prefs = OutputPreferences()
    for field_name, key in STORAGE_KEYS.items():
        if key not in stored:
            continue
        try:
            prefs = prefs.updated(**{field_name: stored[key]})
        except InvalidPreference as e:
            logger.warning(f"Ignoring stored preference {key}={stored[key]!r}: {e.message}")
    return prefs


def save_preferences(
    session: Session, prefs: OutputPreferences, previous: OutputPreferences | None = None
) -> list[str]:
    """바뀐 키만 기록하고, 기록한 키 목록을 반환한다."""
    old = previous.to_storage() if previous else {}
    changed = [key for key, value in prefs.to_storage().items() if old.get(key) != value]

    values = prefs.to_storage()
    for key in changed:
        entry = session.get(PreferenceEntry, key)
        if entry:
            entry.value = values[key]
        else:
            entry = PreferenceEntry(key=key, value=values[key])
        session.add(entry)
    session.commit()

    if changed:
        logger.debug(f"Saved preferences: {', '.join(changed)}")
    return changed
