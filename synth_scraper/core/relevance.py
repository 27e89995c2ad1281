"""
Relevance Filter
Decides whether a captured page is worth synthesizing a program for
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Set

from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer

logger = logging.getLogger(__name__)

_tokenizer = RegexpTokenizer(r'\w+')
_stemmer = PorterStemmer()


@lru_cache(maxsize=50000)
def _stem(word: str) -> str:
    return _stemmer.stem(word)


def stemmed_tokens(text: str) -> Set[str]:
    """Lowercase, tokenize on word characters and Porter-stem"""
    words = set(_tokenizer.tokenize(text.lower()))
    return {_stem(word) for word in words}


def _normalize_category(category: str) -> str:
    return ' '.join(category.lower().split())


class KeywordRelevanceStrategy:
    """Case-insensitive substring match against a static category table"""

    DEFAULT_KEYWORDS = {
        'blog articles': ['blog', 'article', 'post'],
        'product data': ['product', 'price', 'sale'],
    }

    def __init__(self, keywords: Optional[Dict[str, List[str]]] = None):
        table = keywords if keywords is not None else self.DEFAULT_KEYWORDS
        self.keywords = {
            _normalize_category(category): [k.lower() for k in words]
            for category, words in table.items()
        }

    def knows(self, category: str) -> bool:
        return _normalize_category(category) in self.keywords

    def is_relevant(self, markup: str, category: str) -> bool:
        keywords = self.keywords.get(_normalize_category(category), [])
        if not keywords or not markup:
            return False
        lowered = markup.lower()
        return any(keyword in lowered for keyword in keywords)


class TokenRelevanceStrategy:
    """Relevant if any stemmed category token appears among the stemmed markup tokens"""

    def is_relevant(self, markup: str, category: str) -> bool:
        if not markup or not category:
            return False
        category_tokens = stemmed_tokens(category)
        if not category_tokens:
            return False
        return not category_tokens.isdisjoint(stemmed_tokens(markup))


class RelevanceFilter:
    """
    Composite filter: keyword table first, stemmed tokens second

    The token strategy is always consulted before a page is declared
    irrelevant, so categories missing from the keyword table still work.
    """

    def __init__(
        self,
        keyword_strategy: Optional[KeywordRelevanceStrategy] = None,
        token_strategy: Optional[TokenRelevanceStrategy] = None
    ):
        self.keyword_strategy = keyword_strategy or KeywordRelevanceStrategy()
        self.token_strategy = token_strategy or TokenRelevanceStrategy()

    def is_relevant(self, markup: str, category: str) -> bool:
        if not markup:
            return False

        if self.keyword_strategy.is_relevant(markup, category):
            logger.debug(f" Keyword match for '{category}'")
            return True

        if not self.keyword_strategy.knows(category):
            logger.debug(f" No keyword entry for '{category}', falling back to token matching")

        relevant = self.token_strategy.is_relevant(markup, category)
        if relevant:
            logger.debug(f" Stemmed token match for '{category}'")
        return relevant
