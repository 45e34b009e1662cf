"""FreeMarker to Go text/template converter."""

from .converter import ConversionResult, Converter, convert_template
from .diagnostics import Diagnostic

__all__ = ["Converter", "ConversionResult", "convert_template", "Diagnostic"]
