# phonejail/messages.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationTheme(str, Enum):
    DAILY_CHECKIN = "Daily Check-in"
    WEEKLY_REVIEW = "Weekly Review"
    GOAL_SETTING = "Goal Setting"
    TRIGGER_EXPLORATION = "Trigger Exploration"
    COPING_STRATEGIES = "Coping Strategies"
    MINDFULNESS = "Mindfulness"
    PROGRESS_CELEBRATION = "Progress Celebration"
    SETBACK_SUPPORT = "Setback Support"

    @property
    def description(self) -> str:
        return _THEME_DESCRIPTIONS[self]


_THEME_DESCRIPTIONS = {
    ConversationTheme.DAILY_CHECKIN: "Daily reflection on digital habits and intentions",
    ConversationTheme.WEEKLY_REVIEW: "Weekly progress review and planning",
    ConversationTheme.GOAL_SETTING: "Setting and refining digital wellness goals",
    ConversationTheme.TRIGGER_EXPLORATION: "Identifying triggers for excessive app use",
    ConversationTheme.COPING_STRATEGIES: "Developing healthy coping mechanisms",
    ConversationTheme.MINDFULNESS: "Mindful awareness of technology use",
    ConversationTheme.PROGRESS_CELEBRATION: "Celebrating achievements and milestones",
    ConversationTheme.SETBACK_SUPPORT: "Support and guidance during difficult times",
}

_LC_TYPES = {
    Sender.USER: HumanMessage,
    Sender.ASSISTANT: AIMessage,
    Sender.SYSTEM: SystemMessage,
}


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str
    sender: Sender
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    theme: Optional[ConversationTheme] = None

    @classmethod
    def user(cls, content: str, theme: ConversationTheme | None = None) -> "Message":
        return cls(content=content, sender=Sender.USER, theme=theme)

    @classmethod
    def assistant(cls, content: str, theme: ConversationTheme | None = None) -> "Message":
        return cls(content=content, sender=Sender.ASSISTANT, theme=theme)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(content=content, sender=Sender.SYSTEM)

    @property
    def speaker(self) -> str:
        """Label used when the message is rendered into a prompt."""
        return "Jailkeeper" if self.sender == Sender.ASSISTANT else self.sender.value.capitalize()

    def to_langchain(self) -> BaseMessage:
        extra = {"timestamp": self.timestamp.isoformat()}
        if self.theme is not None:
            extra["theme"] = self.theme.value
        return _LC_TYPES[self.sender](content=self.content, id=self.id, additional_kwargs=extra)

    @classmethod
    def from_langchain(cls, message: BaseMessage) -> "Message":
        if isinstance(message, SystemMessage):
            sender = Sender.SYSTEM
        elif isinstance(message, AIMessage):
            sender = Sender.ASSISTANT
        else:
            sender = Sender.USER

        extra = message.additional_kwargs or {}
        kwargs = {"content": str(message.content), "sender": sender}
        if message.id:
            kwargs["id"] = message.id
        if extra.get("timestamp"):
            kwargs["timestamp"] = datetime.fromisoformat(extra["timestamp"])
        if extra.get("theme"):
            kwargs["theme"] = ConversationTheme(extra["theme"])
        return cls(**kwargs)
