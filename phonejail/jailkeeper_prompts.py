from typing import Iterable

from phonejail.messages import Message, Sender


NEGOTIATION_FRAMING = """
ACCESS CONTROL MODE: Strict mode is active and your blocking schemas are locked.
Explain to the Jailkeeper why you need access. If they are convinced, access will be unlocked for a limited time.
""".strip()

ACCESS_GRANTED_NOTICE = "Access granted for {DURATION}. Schema modifications are unlocked until the timer runs out."

NEGOTIATION_PROMPT = """
{AUTHORITY_PROMPT}

IMPORTANT: You are currently in ACCESS CONTROL MODE. The user is requesting access to modify their blocking schemas while strict mode is active.

Your role is to evaluate their request based on your personality:
- Strict: Only grant access for genuine emergencies or critical needs
- Balanced: Consider reasonable requests that show self-awareness and valid reasons
- Lenient: Be more flexible but still encourage good digital habits

CRITICAL INSTRUCTION: If you decide to grant access, you MUST include the exact phrase "{CODEWORD}" somewhere in your response. This is the secret code that unlocks schema access. Do NOT include this phrase unless you are genuinely convinced they should have access.

Conversation history:
{TRANSCRIPT}
User: {STATEMENT}

Jailkeeper:"""

AUTHORITY_PROMPT = """
{AUTHORITY_PROMPT}

{TRANSCRIPT}

User: {STATEMENT}

Jailkeeper:"""

GUIDE_PROMPT = """
{GUIDE_PROMPT}

{THEME_SECTION}RECENT CONVERSATION:
{TRANSCRIPT}

User: {STATEMENT}

Respond as a supportive digital wellness guide. Ask one reflective question when it helps the user examine their habits.

Jailkeeper:"""

THEME_SECTION = "CURRENT CONVERSATION THEME: {THEME} - {THEME_DESCRIPTION}\n\n"


def render_transcript(messages: Iterable[Message]) -> str:
    """``Speaker: content`` lines, System messages left out."""
    return "\n".join(
        f"{m.speaker}: {m.content}"
        for m in messages
        if m.sender != Sender.SYSTEM
    )
