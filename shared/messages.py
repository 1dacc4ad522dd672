"""
Prompt texts shown through the conversation gateway.

English only. The reply keywords below are matched literally after trimming.
"""

from __future__ import annotations

from shared.models import ParameterSlot

EXIT_REPLY = "exit"
NONE_REPLY = "none"

_PROMPT_PARAM = "OK. What is the value for the {title}? (Type 'exit' to skip it.)"
_PROMPT_PARAM_AGAIN = (
    "I still could not determine the {title}. Please enter just the value for the {title} "
    "with no other text. (Type 'exit' to skip it.)"
)
_PROMPT_PARAM_PARSING_DISABLED = "Please enter the value for the {title}. (Type 'exit' to skip it.)"
_FUZZY_RESULT = "I'm not sure which {title} you meant. Did you mean one of these?\n{items}"
_FUZZY_ITEM = "{number}) {value}"
_FUZZY_NONE = "none of these"


def value_prompt(slot: ParameterSlot) -> str:
    """First ask for a value; the slot's own prompt wins when declared."""
    if slot.prompt:
        return slot.prompt
    return _PROMPT_PARAM.format(title=slot.display_name)


def just_value_prompt(slot: ParameterSlot) -> str:
    return _PROMPT_PARAM_AGAIN.format(title=slot.display_name)


def parsing_disabled_prompt(slot: ParameterSlot) -> str:
    return _PROMPT_PARAM_PARSING_DISABLED.format(title=slot.display_name)


def fuzzy_choice_prompt(slot: ParameterSlot, choices: list[str]) -> str:
    """Numbered list of choices followed by the explicit 'none of these' entry."""
    lines = [_FUZZY_ITEM.format(number=i + 1, value=choice) for i, choice in enumerate(choices)]
    lines.append(_FUZZY_ITEM.format(number=len(choices) + 1, value=_FUZZY_NONE))
    return _FUZZY_RESULT.format(title=slot.display_name, items="\n".join(lines))


def is_exit(reply: str) -> bool:
    return reply.strip() == EXIT_REPLY
