"""
Unicode tokenizer.

Maps normalized text to the model's integer vocabulary with a static
codepoint -> id table and builds the padded id matrix and validity mask
for a batch of texts.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import AssetMalformedError, EmptyBatchError
from .models import TokenBatch
from .preprocessing import normalize_text
from .tensors import lengths_to_mask


class UnicodeVocabulary:
    """Static codepoint -> token id table.

    The table is an ordered integer array where the index is the source
    codepoint. Codepoints beyond the end of the table map to id 0.
    """

    def __init__(self, table: ArrayLike):
        ids = np.asarray(table)
        if ids.ndim != 1 or not np.issubdtype(ids.dtype, np.integer):
            raise AssetMalformedError(
                "Vocabulary must be a one-dimensional integer array",
                {"ndim": int(ids.ndim), "dtype": str(ids.dtype)},
            )
        self._ids = ids.astype(np.int64)
        self._ids.setflags(write=False)

    def __len__(self) -> int:
        return int(self._ids.size)

    def lookup(self, codepoint: int) -> int:
        if 0 <= codepoint < self._ids.size:
            return int(self._ids[codepoint])
        return 0

    def encode(self, text: str) -> NDArray[np.int64]:
        """Map each codepoint of ``text`` to its token id."""
        codepoints = np.fromiter((ord(ch) for ch in text), dtype=np.int64, count=len(text))
        ids = np.zeros(len(text), dtype=np.int64)
        known = codepoints < self._ids.size
        ids[known] = self._ids[codepoints[known]]
        return ids


class UnicodeTokenizer:
    """Normalizes and tokenizes batches of texts."""

    def __init__(
        self,
        vocabulary: UnicodeVocabulary,
        normalizer: Callable[[str], str] = normalize_text,
    ):
        self._vocabulary = vocabulary
        self._normalizer = normalizer

    @property
    def vocabulary(self) -> UnicodeVocabulary:
        return self._vocabulary

    def tokenize(self, texts: Sequence[str]) -> TokenBatch:
        """Tokenize a batch of raw texts.

        Args:
            texts: Raw texts, one per batch item

        Returns:
            TokenBatch padded to the longest normalized text

        Raises:
            EmptyBatchError: If texts is empty
        """
        if len(texts) == 0:
            raise EmptyBatchError("Cannot tokenize an empty batch")

        normalized = [self._normalizer(text) for text in texts]
        lengths = np.array([len(text) for text in normalized], dtype=np.int64)
        max_len = int(lengths.max())

        ids = np.zeros((len(normalized), max_len), dtype=np.int64)
        for i, text in enumerate(normalized):
            ids[i, : lengths[i]] = self._vocabulary.encode(text)

        mask = lengths_to_mask(lengths, max_len)
        return TokenBatch(ids=ids, mask=mask, lengths=lengths, texts=tuple(normalized))
