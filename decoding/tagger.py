"""
Part-of-speech tagging backends.

The decoder only depends on the `Tagger` protocol and on Penn Treebank tags
(`NN`, `NNP`, `CD`). The default backend is NLTK's averaged perceptron tagger.
"""

from __future__ import annotations

import logging
from typing import Protocol

import nltk
from nltk.tokenize import RegexpTokenizer

from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

NOUN_TAGS = frozenset({"NN", "NNP"})
NUMBER_TAG = "CD"

_TAGGER_RESOURCES = (
    ("taggers/averaged_perceptron_tagger_eng", "averaged_perceptron_tagger_eng"),
    ("taggers/averaged_perceptron_tagger", "averaged_perceptron_tagger"),
)

# Decimal and grouped numbers ("2.5", "1,000") stay whole; "x10y" is one word.
_TOKENIZER = RegexpTokenizer(r"\d+(?:[.,]\d+)*(?!\w)|\w+|[^\w\s]+")


class Tagger(Protocol):
    """Tokenize a text and tag each token."""

    def tag(self, text: str) -> list[tuple[str, str]]:
        ...


def tokenize(text: str) -> list[str]:
    """Regex tokenization; needs no model download."""
    return _TOKENIZER.tokenize(text)


class NltkTagger:
    """NLTK-backed tagger."""

    def tag(self, text: str) -> list[tuple[str, str]]:
        tokens = tokenize(text)
        if not tokens:
            return []
        try:
            tagged = nltk.pos_tag(tokens)
        except LookupError as e:
            raise ConfigurationError(
                "NLTK perceptron tagger model is not installed; run ensure_nltk_data() first"
            ) from e
        return [(str(word), str(tag)) for word, tag in tagged]


def ensure_nltk_data(quiet: bool = True) -> bool:
    """Download the perceptron tagger model when it is not installed yet.

    Returns True when a usable model is available afterwards.
    """
    for resource_path, _package in _TAGGER_RESOURCES:
        try:
            nltk.data.find(resource_path)
            return True
        except LookupError:
            continue

    for _resource_path, package in _TAGGER_RESOURCES:
        try:
            if nltk.download(package, quiet=quiet):
                logger.info("Downloaded NLTK resource: %s", package)
                return True
        except Exception as e:
            logger.warning("Could not download NLTK resource '%s': %s", package, e)
    return False
