"""
Shared test infrastructure for ftl2gotpl.

Modules:
- file_utils: creating template trees on disk
- cli_utils: running the CLI in a subprocess
"""

from .file_utils import write, write_templates
from .cli_utils import run_cli, jload

__all__ = ["write", "write_templates", "run_cli", "jload"]
