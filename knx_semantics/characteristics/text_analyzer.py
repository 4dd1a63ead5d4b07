"""Text analysis for group address names

Turns names like ``"Deckenleuchte Küche Ein/Aus"`` into comparable terms:
lowercase, split into words, drop stop words, fold diacritics, split
compounds into known words and stem everything with the Snowball German
stemmer.
"""
import logging
import re
import unicodedata
from pathlib import Path
from typing import Iterable, List, Optional, Set

import snowballstemmer

from knx_semantics.config import config

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / 'data'
STOPWORDS_FILE = DATA_DIR / 'stopwords_de.txt'
DICTIONARY_FILE = DATA_DIR / 'dictionary_de.txt'

_TOKEN_PATTERN = re.compile(r'\w+')


def fold(text: str) -> str:
    """Replace umlauts and other diacritics by their base letters (``Küche`` -> ``Kuche``)."""
    text = text.replace('ß', 'ss')
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


def read_word_list(path: Path) -> Set[str]:
    """Read a word list, one word per line; ``#`` starts a comment."""
    words = set()
    with open(path, encoding='utf8') as f:
        for line in f:
            word = line.split('#', 1)[0].strip()
            if word:
                words.add(fold(word.lower()))
    return words


class GermanTextAnalyzer:
    """Analyzer producing the terms of a name"""

    def __init__(self, dictionary: Optional[Iterable[str]] = None, stopwords: Optional[Iterable[str]] = None,
                 settings: Optional[dict] = None):
        """
        Args:
            dictionary: Words known to the decompounder (default: bundled list)
            stopwords: Words dropped from the input (default: bundled list)
            settings: Overrides for the ``text_analysis`` config section
        """
        settings = dict(config['text_analysis'], **(settings or {}))
        self.min_word_size = settings['min_word_size']
        self.min_subword_size = settings['min_subword_size']
        self.max_subword_size = settings['max_subword_size']
        self.only_longest_match = settings['only_longest_match']

        if dictionary is None:
            self.dictionary = read_word_list(DICTIONARY_FILE)
        else:
            self.dictionary = {fold(w.lower()) for w in dictionary}
        if stopwords is None:
            self.stopwords = read_word_list(STOPWORDS_FILE)
        else:
            self.stopwords = {fold(w.lower()) for w in stopwords}

        self._stemmer = snowballstemmer.stemmer('german')
        logger.debug(f"Text analyzer ready: {len(self.dictionary)} dictionary words, "
                     f"{len(self.stopwords)} stop words")

    def tokenize(self, text: str) -> List[str]:
        """Lowercase, split on word boundaries, fold and drop stop words."""
        tokens = []
        for token in _TOKEN_PATTERN.findall(text.lower()):
            token = fold(token)
            if token and token not in self.stopwords:
                tokens.append(token)
        return tokens

    def decompound(self, token: str) -> List[str]:
        """
        Find the dictionary words a compound consists of.

        Example:
            >>> GermanTextAnalyzer().decompound('spiegellicht')
            ['spiegel', 'licht']
        """
        if len(token) < self.min_word_size:
            return []

        parts = []
        for start in range(len(token) - self.min_subword_size + 1):
            longest = None
            for size in range(self.min_subword_size, self.max_subword_size + 1):
                if start + size > len(token):
                    break
                candidate = token[start:start + size]
                if candidate in self.dictionary:
                    if self.only_longest_match:
                        longest = candidate
                    else:
                        parts.append(candidate)
            if longest:
                parts.append(longest)
        return parts

    def stem(self, word: str) -> str:
        return self._stemmer.stemWord(word)

    def normalize(self, word: str) -> str:
        """Normalize a single vocabulary word the way names are normalized, without decompounding."""
        return self.stem(fold(word.strip().lower()))

    def get_terms(self, text: Optional[str]) -> List[str]:
        """
        Analyze a text.

        Args:
            text: Name to analyze

        Returns:
            Unique terms in order of appearance; the compound comes before its parts
        """
        if not text:
            return []

        terms = []
        for token in self.tokenize(text):
            for word in [token] + self.decompound(token):
                term = self.stem(word)
                if term and term not in terms:
                    terms.append(term)
        return terms
