"""
Action directive extraction.

Generated replies may embed directives such as ``[ACTION:place_order:1]``.
They are pulled out into a structured list and removed from the text shown
to the user. Only this module knows the tag syntax.
"""

import logging
import re
from dataclasses import dataclass, field

from procurement_agent.models import Action

logger = logging.getLogger(__name__)


KNOWN_ACTIONS = frozenset(
    {
        "open_supplier_details",
        "create_rfq",
        "place_order",
        "check_inventory",
        "export_data",
    }
)


@dataclass
class ExtractedReply:
    text: str
    actions: list[Action] = field(default_factory=list)


class ActionParser:
    """Parses ``[ACTION:<type>:<parameter>]`` tags."""

    TAG = re.compile(r"\[ACTION:([^:\]]+):([^\]]+)\]")
    _BLANK_RUNS = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")
    _TRAILING_SPACE = re.compile(r"[ \t]+\n")

    def extract(self, text: str) -> ExtractedReply:
        actions = []
        seen = set()
        for match in self.TAG.finditer(text):
            action = Action(type=match.group(1).strip(), parameter=match.group(2).strip())
            if action.type not in KNOWN_ACTIONS:
                logger.debug(f"Unknown action directive kept: {action.type}")
            if action not in seen:
                seen.add(action)
                actions.append(action)

        cleaned = self.TAG.sub("", text)
        cleaned = self._TRAILING_SPACE.sub("\n", cleaned)
        cleaned = self._BLANK_RUNS.sub("\n\n", cleaned).strip()
        return ExtractedReply(text=cleaned, actions=actions)

    @staticmethod
    def tag(action_type: str, parameter) -> str:
        return f"[ACTION:{action_type}:{parameter}]"


_default_parser = ActionParser()


def extract_actions(text: str) -> ExtractedReply:
    """Split generated text into display text and action directives."""
    return _default_parser.extract(text)


def action_tag(action_type: str, parameter) -> str:
    return ActionParser.tag(action_type, parameter)
