"""
Pattern Command Classifier

Fixed regex grammar per intent. Groups are tried in priority order
(navigation > control > generation) and intents in declaration order;
the numeric "go to slide N" pattern runs after the navigation phrases.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from modules.intent.base import (
    Classification,
    Command,
    CommandClassifier,
    CommandGroup,
    CommandIntent,
    ContentSpeech,
    Utterance
)
from utils.logger import get_logger

logger = get_logger('intent.pattern')


DEFAULT_GRAMMAR: Dict[CommandIntent, List[str]] = {
    CommandIntent.NAVIGATE_NEXT: [
        r"\bnext (slide|page)\b",
        r"\bgo (forward|next)\b",
        r"\b(move|slide) forward\b",
    ],
    CommandIntent.NAVIGATE_BACK: [
        r"\b(previous|prev) (slide|page)\b",
        r"\bgo back\b",
        r"\b(move|slide) back\b",
    ],
    CommandIntent.NAVIGATE_FIRST: [
        r"\bfirst (slide|page)\b",
        r"\bgo to (the )?(start|beginning)\b",
    ],
    CommandIntent.NAVIGATE_LAST: [
        r"\b(last|final) (slide|page)\b",
        r"\bgo to (the )?end\b",
    ],
    CommandIntent.START_PRESENTATION: [
        r"\b(start|begin) (the )?(presentation|slideshow|session)\b",
    ],
    CommandIntent.STOP_PRESENTATION: [
        r"\b(stop|end|exit|finish) (the )?(presentation|slideshow|session)\b",
    ],
    CommandIntent.PAUSE_PRESENTATION: [
        r"\bpause (the )?(presentation|session)\b",
        r"^pause$",
    ],
    CommandIntent.RESUME_PRESENTATION: [
        r"\b(resume|continue) (the )?(presentation|session)\b",
        r"^resume$",
    ],
    CommandIntent.START_RECORDING: [
        r"\bstart recording\b",
    ],
    CommandIntent.STOP_RECORDING: [
        r"\bstop recording\b",
    ],
    CommandIntent.GENERATE_QUIZ: [
        r"\b(generate|create|make) (a |the )?quiz\b",
    ],
    CommandIntent.CREATE_SUMMARY: [
        r"\b(create|generate|make) (a |the )?summary\b",
        r"\bsummari[sz]e (the )?(presentation|session)\b",
    ],
    CommandIntent.SHOW_NOTES: [
        r"\bshow (the |my )?(speaker )?notes\b",
        r"\bdownload (the )?notes\b",
    ],
    CommandIntent.SHOW_KEYWORDS: [
        r"\bshow (the )?keywords\b",
    ],
}

NUMBER_WORDS = {
    'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5,
    'six': 6, 'seven': 7, 'eight': 8, 'nine': 9, 'ten': 10,
    'eleven': 11, 'twelve': 12, 'thirteen': 13, 'fourteen': 14, 'fifteen': 15,
    'sixteen': 16, 'seventeen': 17, 'eighteen': 18, 'nineteen': 19, 'twenty': 20,
}

_NUMBER = r"(\d+|" + "|".join(NUMBER_WORDS) + r")"

GOTO_PATTERNS = [
    r"\b(go|jump|skip|move|switch|turn) to (the )?(slide|page) (number )?" + _NUMBER + r"\b",
    r"^(slide|page) (number )?" + _NUMBER + r"$",
]

GROUP_ORDER = [CommandGroup.NAVIGATION, CommandGroup.CONTROL, CommandGroup.GENERATION]


class PatternIntent(CommandClassifier):
    """Regex grammar classifier; confidence is the recognition confidence"""

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config or {})

        grammar = {intent: list(patterns) for intent, patterns in DEFAULT_GRAMMAR.items()}

        for intent_name, patterns in self.config.get('extra_patterns', {}).items():
            intent = CommandIntent(intent_name)
            grammar.setdefault(intent, []).extend(patterns)

        self._rules: List[Tuple[CommandIntent, List[Pattern]]] = []
        for group in GROUP_ORDER:
            for intent, patterns in grammar.items():
                if intent.group != group or intent == CommandIntent.NAVIGATE_TO:
                    continue
                self._rules.append((intent, [re.compile(p, re.IGNORECASE) for p in patterns]))

            if group == CommandGroup.NAVIGATION:
                goto = GOTO_PATTERNS + grammar.get(CommandIntent.NAVIGATE_TO, [])
                self._rules.append((CommandIntent.NAVIGATE_TO, [re.compile(p, re.IGNORECASE) for p in goto]))

        logger.info(f"Pattern classifier initialized ({len(self._rules)} intents)")

    @staticmethod
    def normalize(text: str) -> str:
        """Lower-case, drop punctuation except apostrophes, collapse spaces"""
        text = text.lower()
        text = re.sub(r"[^\w\s']", " ", text)
        return re.sub(r"\s+", " ", text).strip()

    def classify(self, utterance: Utterance) -> Classification:
        text = self.normalize(utterance.text)

        if not text:
            return ContentSpeech(utterance)

        for intent, patterns in self._rules:
            for pattern in patterns:
                match = pattern.search(text)
                if not match:
                    continue

                parameters = {}
                if intent == CommandIntent.NAVIGATE_TO:
                    slide = self._parse_slide_number(match)
                    if slide is None:
                        continue
                    parameters['slide'] = slide

                logger.debug(f"Matched {intent.value} in '{text}'")
                return Command(
                    raw_text=utterance.text,
                    intent=intent,
                    confidence=utterance.confidence,
                    parameters=parameters,
                    timestamp=utterance.timestamp
                )

        return ContentSpeech(utterance)

    @staticmethod
    def _parse_slide_number(match: re.Match) -> Optional[int]:
        """The slide number is the last captured group"""
        groups = [g for g in match.groups() if g]
        if not groups:
            return None

        token = groups[-1].strip()
        if token.isdigit():
            return int(token)
        return NUMBER_WORDS.get(token)
