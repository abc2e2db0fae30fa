from typing import List

from langchain_community.chat_message_histories.in_memory import ChatMessageHistory

from phonejail.messages import Message


class HistoryCache:
    """
    Shared Jailkeeper transcript:
    - LangChain ChatMessageHistory underneath, so messages keep their ids/timestamps
    - approximate token cap (chars/4 heuristic), oldest messages dropped first
    - only touched from the event loop, no locking
    """

    def __init__(self, max_tokens: int = 8000):
        self.max_tokens = max_tokens
        self._history = ChatMessageHistory()

    def _approx_tokens(self, text: str) -> int:
        return max(1, len(text) // 4)

    def append(self, message: Message) -> None:
        self._history.add_message(message.to_langchain())
        self._prune_to_token_cap()

    def snapshot(self) -> List[Message]:
        """Returns a COPY of the transcript, oldest first."""
        return [Message.from_langchain(m) for m in self._history.messages]

    def last(self, n: int) -> List[Message]:
        if n <= 0:
            return []
        return [Message.from_langchain(m) for m in self._history.messages[-n:]]

    def clear(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history.messages)

    def _prune_to_token_cap(self) -> None:
        msgs = list(self._history.messages)

        tokens = []
        total = 0
        for m in msgs:
            content = getattr(m, "content", "") or ""
            t = self._approx_tokens(str(content))
            tokens.append(t)
            total += t

        if total <= self.max_tokens:
            return

        # drop from front until under cap
        i = 0
        while i < len(msgs) and total > self.max_tokens:
            total -= tokens[i]
            i += 1

        self._history.messages = msgs[i:]
