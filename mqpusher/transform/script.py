"""
ScriptTransformer - converts records with a user-provided Python script.

The script is a Python file defining a callable ``convert(record)`` that
returns the record to publish:

    def convert(record):
        record.pop("secret", None)
        return record
"""

import importlib.util
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

from mqpusher.core.errors import ConfigurationError, TransformError
from mqpusher.observability.logger import get_logger

logger = get_logger(__name__)

CONVERT_FUNCTION = "convert"

ConvertCallable = Callable[[dict[str, Any]], Any]


class ScriptTransformer:
    """
    Applies a conversion function to each record.

    The function must be pure from the pipeline's point of view. Its result
    is checked at runtime: anything that is not a mapping is an error, it is
    never coerced.
    """

    def __init__(self, convert_func: ConvertCallable, name: str = "script"):
        if not callable(convert_func):
            raise ConfigurationError(f"{name}: {CONVERT_FUNCTION} must be callable")
        self.convert_func = convert_func
        self.name = name

    @classmethod
    def from_file(cls, script_path: str | Path) -> "ScriptTransformer":
        """
        Load the conversion function from a script file.

        Args:
            script_path: Path to the Python script

        Returns:
            ScriptTransformer wrapping the script's convert function

        Raises:
            ConfigurationError: If the file is missing, fails to load, or does
                not define a callable convert(record)
        """
        resolved_path = Path(script_path).expanduser().resolve()
        if not resolved_path.is_file():
            raise ConfigurationError(f"reading script: file not found at {resolved_path}")

        module = _load_python_module(resolved_path)
        convert_func = getattr(module, CONVERT_FUNCTION, None)
        if convert_func is None or not callable(convert_func):
            raise ConfigurationError(
                f"parsing script {resolved_path}: missing callable {CONVERT_FUNCTION}(record)"
            )

        logger.info(f"Loaded conversion script {resolved_path}")
        return cls(convert_func, name=resolved_path.name)

    def apply(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Convert one record.

        Args:
            record: Record read from the source

        Returns:
            The converted record as a plain dict

        Raises:
            TransformError: If the script raises or returns a non-mapping
        """
        try:
            result = self.convert_func(record)
        except Exception as e:
            raise TransformError(f"executing script {self.name}: {e}") from e

        if not isinstance(result, Mapping):
            raise TransformError(
                f"invalid conversion from script value to map: "
                f"{self.name} returned {type(result).__name__}"
            )
        return dict(result)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


def _load_python_module(module_path: Path) -> Any:
    """Load Python module from file path."""
    spec = importlib.util.spec_from_file_location("mqpusher_user_script", str(module_path))
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"parsing script {module_path}: cannot be loaded as a Python module")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigurationError(f"parsing script {module_path}: {e}") from e
    return module
