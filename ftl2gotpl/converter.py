"""
Single-document conversion pipeline: text -> tokens -> AST -> Go template text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .emitter import Emitter
from .features import detect_features
from .lexer import tokenize_template
from .parser import parse_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """Output of one successful conversion."""
    output: str
    helpers: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)


class Converter:
    """
    Stateless FreeMarker -> Go template converter.

    Each convert() call allocates its own emitter (scopes and helper set),
    so one instance may be shared between threads.
    """

    def convert(self, file: str, text: str) -> ConversionResult:
        """
        Convert one template.

        Args:
            file: Display name used in diagnostics
            text: FreeMarker source

        Returns:
            ConversionResult with sorted helpers and features

        Raises:
            Diagnostic: On the first lexical, structural or emission error
        """
        tokens = tokenize_template(file, text)
        doc = parse_template(file, tokens)

        emitter = Emitter(file)
        output = emitter.emit_document(doc)
        helpers = emitter.helper_list()

        logger.debug("converted %s: %d tokens, %d top-level nodes", file, len(tokens), len(doc.nodes))
        return ConversionResult(
            output=output,
            helpers=helpers,
            features=detect_features(doc, helpers),
        )


def convert_template(file: str, text: str) -> ConversionResult:
    """Shortcut for Converter().convert(file, text)."""
    return Converter().convert(file, text)


__all__ = ["ConversionResult", "Converter", "convert_template"]
