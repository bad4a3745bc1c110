"""
Bag-of-words feature extraction for raw email text.

Turns an email into the same word-count vector the training CSV holds: one
count per vocabulary word, in vocabulary order.
"""

import re
import string

import torch
from sklearn.feature_extraction.text import CountVectorizer

# Words are runs of characters that are neither whitespace nor ASCII punctuation
TOKEN_PATTERN = r"[^\s" + re.escape(string.punctuation) + r"]+"


class FeatureExtractor:
    """Counts vocabulary words in email text."""

    def __init__(self, vocabulary):
        """
        @param vocabulary: Ordered word list (the dataset's feature column names)
        """
        self.vocabulary = list(vocabulary)
        self.vectorizer = CountVectorizer(
            vocabulary=self.vocabulary,
            lowercase=True,
            token_pattern=TOKEN_PATTERN,
        )

    def __len__(self):
        return len(self.vocabulary)

    def transform(self, text):
        """
        Converts email text into a word-count vector
        @param text: Raw email text
        @returns: float64 tensor [len(vocabulary)]
        """
        counts = self.vectorizer.transform([text or '']).toarray()[0]
        return torch.tensor(counts, dtype=torch.float64)
