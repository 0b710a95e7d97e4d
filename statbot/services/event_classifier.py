"""
Классификация входящих сообщений для статистики.
Определяет текст / стикер / медиа и количество слов.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Типы вложений, которые считаются медиа (порядок = приоритет для last_activity)
MEDIA_KINDS = ("photo", "video", "document", "audio", "voice", "video_note")


@dataclass(frozen=True)
class ClassifiedEvent:
    """Факты о сообщении, из которых строятся приращения счётчиков."""
    is_text: bool = False
    is_sticker: bool = False
    is_media: bool = False
    word_count: int = 0
    activity: Optional[str] = None  # text / sticker / photo / video ...


def count_words(text: Optional[str]) -> int:
    """
    Количество слов: токены, разделённые любыми пробельными символами.

    Серия пробелов - один разделитель, строка из одних пробелов - 0 слов.
    """
    if not text:
        return 0
    return len(text.split())


def classify_message(message) -> Optional[ClassifiedEvent]:
    """
    Классифицирует сообщение.

    Returns:
        ClassifiedEvent или None, если сообщение не интересно статистике
        (сервисные сообщения, опросы, локации и т.п.). None - не ошибка.
    """
    # Текстом считается и подпись к медиа
    content = getattr(message, "text", None) or getattr(message, "caption", None) or ""

    is_text = bool(content)
    is_sticker = getattr(message, "sticker", None) is not None

    media_kind = None
    if not is_sticker:
        for kind in MEDIA_KINDS:
            if getattr(message, kind, None):
                media_kind = kind
                break
    is_media = media_kind is not None

    if not (is_text or is_sticker or is_media):
        return None

    if is_sticker:
        activity = "sticker"
    elif is_media:
        activity = media_kind
    else:
        activity = "text"

    return ClassifiedEvent(
        is_text=is_text,
        is_sticker=is_sticker,
        is_media=is_media,
        word_count=count_words(content),
        activity=activity,
    )
