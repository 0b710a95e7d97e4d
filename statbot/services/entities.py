"""
Лёгкие value-объекты, которыми обмениваются хендлеры, движок и хранилище.

Хранилище и движок не знают про aiogram: хендлеры превращают
`aiogram.types.User` / `Chat` в `Actor` / `ChatRef` один раз на входе.
"""
from dataclasses import dataclass
from typing import Optional

PRIVATE_CHAT_TYPE = "private"


@dataclass(frozen=True)
class Actor:
    """Автор события (пользователь Telegram)."""
    user_id: int
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(
            user_id=user.id,
            first_name=user.first_name or "",
            last_name=user.last_name,
            username=user.username,
        )

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name


@dataclass(frozen=True)
class ChatRef:
    """Чат, в котором произошло событие."""
    chat_id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_chat(cls, chat) -> "ChatRef":
        # У chat.type бывает enum (ChatType) - храним строковое значение
        chat_type = getattr(chat.type, "value", chat.type)
        return cls(
            chat_id=chat.id,
            type=str(chat_type),
            title=getattr(chat, "title", None),
            username=getattr(chat, "username", None),
        )

    @property
    def is_private(self) -> bool:
        return self.type == PRIVATE_CHAT_TYPE


@dataclass(frozen=True)
class CounterDelta:
    """
    Приращения счётчиков для одного события.

    Применяются атомарно выражением `column = column + delta`
    на стороне БД, никогда не через read-modify-write в Python.
    """
    message: int = 0
    words: int = 0
    sticker: int = 0
    media: int = 0
    edited_message: int = 0
    deleted: int = 0
