"""
Class index ↔ symbol mapping (must match training label order).
"""

import operator
import string

from core.errors import InvalidClassIndex

DEL_SYMBOL = "DEL"
SPACE_SYMBOL = "SPACE"

CLASS_LABELS = tuple(string.ascii_uppercase) + (DEL_SYMBOL, SPACE_SYMBOL)


class LabelDecoder:
    """Maps 0–25 to 'A'–'Z', 26 to 'DEL' and 27 to 'SPACE'."""

    def __init__(self, labels=CLASS_LABELS):
        self._labels = tuple(labels)
        self._index = {label: idx for idx, label in enumerate(self._labels)}

    @property
    def labels(self):
        return self._labels

    @property
    def num_classes(self):
        return len(self._labels)

    def decode(self, class_index):
        """Return the symbol for ``class_index``.

        Raises:
            InvalidClassIndex: for anything outside [0, 27], including
                non-integers and bools
        """
        if isinstance(class_index, bool):
            raise InvalidClassIndex(class_index, self.num_classes)
        try:
            index = operator.index(class_index)
        except TypeError:
            raise InvalidClassIndex(class_index, self.num_classes)
        if not 0 <= index < self.num_classes:
            raise InvalidClassIndex(class_index, self.num_classes)
        return self._labels[index]

    def encode(self, symbol):
        """Inverse of :meth:`decode`; raises KeyError for unknown symbols."""
        return self._index[symbol]

    def __len__(self):
        return len(self._labels)
