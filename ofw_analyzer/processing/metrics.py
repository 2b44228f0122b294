"""Per-message word counts, sentiment scores and the composite tone."""

import logging
import math
import re
from dataclasses import replace
from typing import Dict, Iterable, List

from afinn import Afinn
from nltk.stem.porter import PorterStemmer
from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from ..models import Message

logger = logging.getLogger(__name__)

# Divisors that bring each scorer's native scale to roughly [-1, 1]
LEXICON_TONE_DIVISOR = 10.0
STEMMED_TONE_DIVISOR = 2.0

_NEGATIONS = {
    "not", "no", "never", "neither", "nor", "none", "nobody", "nothing", "nowhere",
    "cannot", "cant", "can't", "dont", "don't", "doesnt", "doesn't", "didnt", "didn't",
    "isnt", "isn't", "wasnt", "wasn't", "wont", "won't", "shouldnt", "shouldn't",
}
_EDGE_PUNCT_RE = re.compile(r"^[^\w']+|[^\w']+$")


def count_words(body: str) -> int:
    """Number of whitespace-delimited tokens in *body*."""
    if not isinstance(body, str):
        raise TypeError(f"body must be str, got {type(body).__name__}")
    return len(body.split())


def clamp(value: float, lo: float = -1.0, hi: float = 1.0) -> float:
    """Clamp to [lo, hi]; non-finite values collapse to 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return max(lo, min(hi, value))


class SentimentScorer:
    """Two independent lexicon scorers over a message body.

    Construct once per run and pass it to compute_metrics(); building the
    lexicons is the expensive part.
    """

    def __init__(self):
        self._afinn = Afinn(language="en")
        self._stemmer = PorterStemmer()
        self._stemmed_lexicon = self._build_stemmed_lexicon(
            SentimentIntensityAnalyzer().lexicon
        )

    def _build_stemmed_lexicon(self, lexicon: Dict[str, float]) -> Dict[str, float]:
        stemmed: Dict[str, float] = {}
        for word, valence in lexicon.items():
            if not word.isalpha():
                continue  # emoticons and multi-word entries
            stemmed.setdefault(self._stemmer.stem(word), float(valence))
        logger.debug("Built stemmed lexicon with %d entries", len(stemmed))
        return stemmed

    def lexicon_score(self, body: str) -> float:
        """AFINN sum over the body."""
        if not body:
            return 0.0
        return float(self._afinn.score(body))

    def stemmed_score(self, body: str) -> float:
        """Mean stemmed-lexicon valence per token, with simple negation."""
        tokens = body.split() if body else []
        if not tokens:
            return 0.0

        total = 0.0
        negate = False
        for raw in tokens:
            word = _EDGE_PUNCT_RE.sub("", raw.lower())
            if not word:
                continue
            if word in _NEGATIONS:
                negate = True
                continue
            valence = self._stemmed_lexicon.get(self._stemmer.stem(word))
            if valence is not None:
                total += -valence if negate else valence
                negate = False
        return total / len(tokens)


def compute_tone(sentiment: float, sentiment_natural: float) -> float:
    """Bounded composite of both scores, always within [-1, 1]."""
    lexicon_part = clamp(sentiment / LEXICON_TONE_DIVISOR) if sentiment is not None else 0.0
    stemmed_part = clamp(sentiment_natural / STEMMED_TONE_DIVISOR) if sentiment_natural is not None else 0.0
    return clamp((lexicon_part + stemmed_part) / 2)


def compute_metrics(message: Message, scorer: SentimentScorer) -> Message:
    """Return a copy of *message* with word count, sentiment and tone set."""
    if message.non_message:
        return replace(
            message,
            word_count=0,
            sentiment=0.0,
            sentiment_natural=0.0,
            sentiment_per_word=0.0,
            natural_per_word=0.0,
            tone=0.0,
        )

    body = message.body
    word_count = count_words(body)
    sentiment = scorer.lexicon_score(body)
    natural = scorer.stemmed_score(body)
    denom = max(1, word_count)

    return replace(
        message,
        word_count=word_count,
        sentiment=sentiment,
        sentiment_natural=natural,
        sentiment_per_word=sentiment / denom,
        natural_per_word=natural / denom,
        tone=compute_tone(sentiment, natural),
    )


def apply_metrics(messages: Iterable[Message], scorer: SentimentScorer) -> List[Message]:
    """compute_metrics() over a message list, preserving order."""
    scored = [compute_metrics(m, scorer) for m in messages]
    logger.info("Computed derived metrics for %d messages", len(scored))
    return scored
