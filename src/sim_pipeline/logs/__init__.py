from .classifier import (
    ClassifiedLine,
    LogClassifier,
    LogTag,
    SubstringClassifier,
)
from .router import LogRouter, split_lines

__all__ = [
    "ClassifiedLine",
    "LogClassifier",
    "LogRouter",
    "LogTag",
    "SubstringClassifier",
    "split_lines",
]
