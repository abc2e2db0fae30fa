"""
PERSONALITY POLICY TESTS
"""
import pytest

from phonejail.personality import (
    Personality,
    grant_duration_seconds,
    load_personality_policies,
    policy_for,
)


class TestPolicyLookup:

    @pytest.mark.parametrize("personality,seconds", [
        (Personality.STRICT, 300),
        (Personality.BALANCED, 600),
        (Personality.LENIENT, 900),
    ])
    def test_grant_durations(self, personality, seconds):
        assert grant_duration_seconds(personality) == seconds
        assert policy_for(personality).grant_duration_seconds == seconds

    def test_lookup_by_name_is_case_insensitive(self):
        assert policy_for("balanced").personality == Personality.BALANCED

    def test_unknown_personality(self):
        with pytest.raises(ValueError):
            policy_for("Chaotic")


class TestPolicyOverrides:

    def test_no_path_gives_defaults(self):
        policies = load_personality_policies(None)
        assert policies[Personality.STRICT] == policy_for(Personality.STRICT)

    def test_tone_overrides_from_commented_json(self, tmp_path):
        path = tmp_path / "personalities.jsonc"
        path.write_text(
            """
            {
              // only the tone is configurable
              "Lenient": {"authority_prompt": "Be kind but firm."}
            }
            """,
            encoding="utf-8",
        )
        policies = load_personality_policies(path)

        lenient = policy_for(Personality.LENIENT, policies)
        assert lenient.authority_prompt == "Be kind but firm."
        assert lenient.grant_duration_seconds == 900
        assert policies[Personality.STRICT] == policy_for(Personality.STRICT)

    def test_grant_duration_cannot_be_overridden(self, tmp_path):
        path = tmp_path / "personalities.jsonc"
        path.write_text('{"Strict": {"grant_duration_seconds": 3600}}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_personality_policies(path)

    def test_missing_file_fails_fast(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_personality_policies(tmp_path / "absent.jsonc")
