"""Source preprocessing (XSLT)."""

from .preprocessor import Preprocessor, is_stylesheet, preprocess
from .xslt import XsltProcessor

__all__ = ["Preprocessor", "XsltProcessor", "is_stylesheet", "preprocess"]
