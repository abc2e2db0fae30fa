"""
CONVERSATION HISTORY TESTS
"""
from phonejail.history_cache import HistoryCache
from phonejail.jailkeeper_prompts import render_transcript
from phonejail.messages import ConversationTheme, Message, Sender


class TestHistoryCache:

    def test_messages_keep_identity(self):
        cache = HistoryCache()
        message = Message.user("I need my maps app", theme=ConversationTheme.MINDFULNESS)
        cache.append(message)

        [restored] = cache.snapshot()
        assert restored == message

    def test_snapshot_is_a_copy(self):
        cache = HistoryCache()
        cache.append(Message.user("one"))
        snap = cache.snapshot()
        cache.append(Message.assistant("two"))
        assert len(snap) == 1
        assert len(cache) == 2

    def test_last(self):
        cache = HistoryCache()
        for i in range(7):
            cache.append(Message.user(f"m{i}"))
        assert [m.content for m in cache.last(5)] == ["m2", "m3", "m4", "m5", "m6"]
        assert cache.last(0) == []

    def test_token_cap_drops_oldest(self):
        cache = HistoryCache(max_tokens=10)
        cache.append(Message.user("a" * 20))
        cache.append(Message.assistant("b" * 20))
        cache.append(Message.user("c" * 20))

        assert [m.content[0] for m in cache.snapshot()] == ["b", "c"]

    def test_clear(self):
        cache = HistoryCache()
        cache.append(Message.system("framing"))
        cache.clear()
        assert cache.snapshot() == []


class TestTranscriptRendering:

    def test_system_messages_left_out(self):
        transcript = render_transcript([
            Message.system("ACCESS CONTROL MODE"),
            Message.user("Please"),
            Message.assistant("Why?"),
        ])
        assert transcript == "User: Please\nJailkeeper: Why?"

    def test_speaker_labels(self):
        assert Message.user("x").speaker == "User"
        assert Message.assistant("x").speaker == "Jailkeeper"
        assert Message.system("x").sender == Sender.SYSTEM
