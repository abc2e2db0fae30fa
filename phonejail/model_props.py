# phonejail/model_props.py
from typing import Any, Dict, Optional, Tuple


def is_openai_model(model_name) -> bool:
    # keep it simple; adjust if you start using exotic names
    prefixes = ("gpt-", "gpt4", "gpt-4", "gpt-5")
    return any(model_name.startswith(p) for p in prefixes)


def parse_model_name(raw: str) -> Tuple[str, Dict[str, Any]]:
    """Parse strings like:
        - 'gpt-4o-mini'
        - 'gpt-5.1_fast'
        - 'gpt-5.1_low_minimal'
        - 'gpt-5.1_standard_flex'
    into (base_model, openai_params).
    """
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("parse_model_name: No Model Name passed. ")

    parts = raw.split("_")
    base = parts[0]
    if len(parts) <= 1:
        return base, {}

    verbosity: Optional[str] = None
    reasoning_effort: Optional[str] = None
    service_tier: Optional[str] = None

    verbosity_tokens = {"low", "medium", "high"}
    reasoning_tokens = {"none", "minimal", "low", "medium", "high"}
    service_tier_tokens = {"auto", "default", "flex", "priority"}

    # Jailkeeper replies are short; presets stay on the cheap end
    wildcards: Dict[str, Tuple[Optional[str], Optional[str]]] = {
        "standard": ("low", "low"),
        "std": ("low", "low"),
        "fast": ("low", "none"),
        "careful": ("medium", "medium"),
    }

    unknown = []
    for tok in parts[1:]:
        t = tok.strip().lower()
        if not t:
            continue

        if t in wildcards:
            w_verb, w_reason = wildcards[t]
            verbosity = verbosity or w_verb
            reasoning_effort = reasoning_effort or w_reason
            continue

        if verbosity is None and t in verbosity_tokens:
            verbosity = t
            continue

        if reasoning_effort is None and t in reasoning_tokens:
            reasoning_effort = t
            continue

        if service_tier is None and t in service_tier_tokens:
            service_tier = t
            continue

        unknown.append(t)

    if unknown:
        raise ValueError(f"parse_model_name: Unknown model suffix token(s) {unknown} in '{raw}'. ")

    params: Dict[str, Any] = {}
    if verbosity is not None:
        params.setdefault("text", {})["verbosity"] = verbosity
    if reasoning_effort is not None:
        params.setdefault("reasoning", {})["effort"] = reasoning_effort
    params["service_tier"] = service_tier or "default"

    return base, params
