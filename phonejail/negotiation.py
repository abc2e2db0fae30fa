"""
Conversational unlock negotiation.

While the gate is locked the user argues their case to the Jailkeeper. The
completion prompt instructs the model to include a secret codeword only if
it decides to grant access; the negotiator turns "codeword present in a reply
to an access-control request" into a temporary unlock on the gate.

The codeword check is a plain substring match on the raw completion. That is
an accepted limitation: this is a self-accountability aid, not a security
boundary, and a user who can edit completion responses can always unlock.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import uuid4

from phonejail.access_gate import AccessControlGate
from phonejail.app_config import JAILKEEPER_CODEWORD
from phonejail.base_utils import BaseUtils, format_duration
from phonejail.history_cache import HistoryCache
from phonejail.jailkeeper_prompts import (
    ACCESS_GRANTED_NOTICE,
    AUTHORITY_PROMPT,
    GUIDE_PROMPT,
    NEGOTIATION_FRAMING,
    NEGOTIATION_PROMPT,
    THEME_SECTION,
    render_transcript,
)
from phonejail.llm_client import BaseCompletionClient
from phonejail.messages import ConversationTheme, Message
from phonejail.personality import JailkeeperMode, Personality, PersonalityPolicy, policy_for
from phonejail.results import CompletionErrorKind, Err, Ok, Result

logger = logging.getLogger("phonejail")

GUIDE_CONTEXT_MESSAGES = 5

# (temperature, max_tokens)
NEGOTIATION_SAMPLING = (0.7, 150)
GUIDE_SAMPLING = (0.8, 300)


@dataclass
class NegotiationSession:
    mode: JailkeeperMode = JailkeeperMode.GUIDE
    in_access_control_mode: bool = False
    personality: Personality = Personality.STRICT
    negotiation_id: Optional[str] = None
    # set by an Unauthorized completion; cleared only by reset_session()
    authorization_failed: bool = False


@dataclass(frozen=True)
class NegotiationTurn:
    reply: Optional[str]
    granted_seconds: Optional[int] = None
    discarded: bool = False

    @property
    def granted(self) -> bool:
        return self.granted_seconds is not None


@dataclass(frozen=True)
class _IssuedRequest:
    generation: int
    in_access_control_mode: bool
    negotiation_id: Optional[str]


class JailkeeperNegotiator(BaseUtils):

    def __init__(
        self,
        gate: AccessControlGate,
        completion: BaseCompletionClient,
        *,
        history: HistoryCache | None = None,
        codeword: str = JAILKEEPER_CODEWORD,
        personality: "Personality | str" = Personality.STRICT,
        policies: Dict[Personality, PersonalityPolicy] | None = None,
    ):
        if not codeword:
            raise ValueError("The Jailkeeper needs a non-empty codeword")
        self.gate = gate
        self.completion = completion
        self.history = history if history is not None else HistoryCache()
        self._codeword = codeword
        self._policies = policies
        self.session = NegotiationSession(personality=Personality.parse(personality))
        self._generation = 0

    # -----------------------
    # Views
    # -----------------------

    @property
    def mode(self) -> JailkeeperMode:
        return self.session.mode

    @property
    def in_access_control_mode(self) -> bool:
        return self.session.in_access_control_mode

    @property
    def personality(self) -> Personality:
        return self.session.personality

    @property
    def policy(self) -> PersonalityPolicy:
        return policy_for(self.session.personality, self._policies)

    @property
    def messages(self) -> List[Message]:
        return self.history.snapshot()

    # -----------------------
    # Mode transitions
    # -----------------------

    def enter_access_control_mode(self) -> str:
        """Start a new negotiation. Returns its id; any pending request from an earlier one becomes stale."""
        self.session.mode = JailkeeperMode.AUTHORITY
        self.session.in_access_control_mode = True
        self.session.negotiation_id = str(uuid4())
        self.history.append(Message.system(NEGOTIATION_FRAMING))
        logger.info("Jailkeeper: entered access control mode (negotiation=%s)", self.session.negotiation_id)
        return self.session.negotiation_id

    def exit_access_control_mode(self) -> None:
        self.session.in_access_control_mode = False
        self.session.negotiation_id = None
        if self.session.mode == JailkeeperMode.AUTHORITY:
            self.session.mode = JailkeeperMode.GUIDE
        logger.info("Jailkeeper: left access control mode")

    def switch_to_authority_mode(self) -> None:
        """
        Authority tone without starting a negotiation.
        ``in_access_control_mode`` is left as it is, so codewords still never grant here.
        """
        self.session.mode = JailkeeperMode.AUTHORITY

    def update_personality(self, personality: "Personality | str") -> None:
        self.session.personality = Personality.parse(personality)
        logger.info("Jailkeeper: personality set to %s", self.session.personality.value)

    def clear_messages(self) -> None:
        self.history.clear()

    def reset_session(self) -> None:
        """Forget the transcript and all negotiation state; lifts a previous Unauthorized refusal."""
        self._generation += 1
        self.history.clear()
        self.session = NegotiationSession(personality=self.session.personality)
        logger.info("Jailkeeper: session reset")

    # -----------------------
    # Prompt building
    # -----------------------

    def build_prompt(self, statement: str, theme: ConversationTheme | None = None) -> str:
        policy = self.policy

        if self.session.in_access_control_mode:
            return self.unsafe_string_format(
                NEGOTIATION_PROMPT,
                AUTHORITY_PROMPT=policy.authority_prompt,
                CODEWORD=self._codeword,
                TRANSCRIPT=render_transcript(self.history.snapshot()),
                STATEMENT=statement,
            ).strip()

        if self.session.mode == JailkeeperMode.AUTHORITY:
            return self.unsafe_string_format(
                AUTHORITY_PROMPT,
                AUTHORITY_PROMPT=policy.authority_prompt,
                TRANSCRIPT=render_transcript(self.history.snapshot()),
                STATEMENT=statement,
            ).strip()

        theme_section = ""
        if theme is not None:
            theme_section = self.unsafe_string_format(
                THEME_SECTION,
                THEME=theme.value,
                THEME_DESCRIPTION=theme.description,
            )
        return self.unsafe_string_format(
            GUIDE_PROMPT,
            GUIDE_PROMPT=policy.guide_prompt,
            THEME_SECTION=theme_section,
            TRANSCRIPT=render_transcript(self.history.last(GUIDE_CONTEXT_MESSAGES)),
            STATEMENT=statement,
        ).strip()

    # -----------------------
    # Turn
    # -----------------------

    async def submit_user_statement(
        self,
        text: str,
        theme: ConversationTheme | None = None,
    ) -> Result[NegotiationTurn, CompletionErrorKind]:
        """
        Send one user statement to the Jailkeeper.

        - Ok(turn) with the reply, and ``granted_seconds`` when it unlocked the gate.
        - Ok(turn) with ``discarded=True`` when the negotiation it belonged to
          ended while the completion was pending; nothing is recorded.
        - Err(kind) when the completion failed; only the user statement is recorded.
        """
        statement = (text or "").strip()
        if not statement:
            raise ValueError("Cannot submit an empty statement")

        if self.session.authorization_failed:
            logger.error("Jailkeeper: completion service rejected our credentials; reset the session after fixing the API key")
            return Err(CompletionErrorKind.UNAUTHORIZED)

        prompt = self.build_prompt(statement, theme)
        issued = _IssuedRequest(
            generation=self._generation,
            in_access_control_mode=self.session.in_access_control_mode,
            negotiation_id=self.session.negotiation_id,
        )
        temperature, max_tokens = NEGOTIATION_SAMPLING if self.session.mode == JailkeeperMode.AUTHORITY else GUIDE_SAMPLING
        self.history.append(Message.user(statement, theme=theme))

        result = await self.completion.complete(prompt, temperature=temperature, max_tokens=max_tokens)

        if not result.is_ok and result.error == CompletionErrorKind.UNAUTHORIZED and issued.generation == self._generation:
            self.session.authorization_failed = True

        if self._is_stale(issued):
            logger.info("Jailkeeper: discarding completion for a negotiation that already ended")
            return Ok(NegotiationTurn(reply=None, discarded=True))

        if not result.is_ok:
            logger.warning("Jailkeeper: completion failed: %s", result.error.description)
            return result

        reply = result.value
        self.history.append(Message.assistant(reply, theme=theme))

        if issued.in_access_control_mode and self._codeword in reply:
            seconds = self._grant()
            return Ok(NegotiationTurn(reply=reply, granted_seconds=seconds))

        return Ok(NegotiationTurn(reply=reply))

    def _is_stale(self, issued: _IssuedRequest) -> bool:
        if issued.generation != self._generation:
            return True
        if not issued.in_access_control_mode:
            return False
        return (
            not self.session.in_access_control_mode
            or self.session.negotiation_id != issued.negotiation_id
        )

    def _grant(self) -> int:
        seconds = self.policy.grant_duration_seconds
        self.gate.grant_temporary_access(seconds)

        self.session.mode = JailkeeperMode.GUIDE
        self.session.in_access_control_mode = False
        self.session.negotiation_id = None

        self.history.append(Message.system(
            self.unsafe_string_format(ACCESS_GRANTED_NOTICE, DURATION=format_duration(seconds))
        ))
        self.color_print(f"Jailkeeper granted temporary access ({self.session.personality.value}, {seconds}s)", "green")
        return seconds
