"""
Optional record conversion stage.
"""

from .script import ScriptTransformer

__all__ = ["ScriptTransformer"]
