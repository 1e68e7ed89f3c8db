"""
Input validation utilities for pipeline configuration.

Provides reusable checks for the free-form strings that come from the
configuration file or the command line: file paths and SQL query text.
"""


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


def validate_file_path(file_path: str, field_name: str = "file_path") -> str:
    """
    Validate a file path from configuration.

    Args:
        file_path: The file path to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated file path (stripped of whitespace)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_file_path("/data/input.csv.gz")
        '/data/input.csv.gz'
        >>> validate_file_path("  scripts/convert.py ")
        'scripts/convert.py'
    """
    if not file_path or not isinstance(file_path, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if not file_path:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    # Check for null bytes (security)
    if "\x00" in file_path:
        raise ValidationError(f"{field_name} contains null bytes")

    # Prevent excessively long paths
    if len(file_path) > 4096:  # Linux PATH_MAX
        raise ValidationError(f"{field_name} exceeds maximum length of 4096 characters")

    return file_path


def validate_query(query: str, field_name: str = "query") -> str:
    """
    Validate a source SQL query.

    The query is later wrapped in a ``count(*)`` subquery, so it must be a
    single statement. A trailing semicolon is removed.

    Args:
        query: The SQL query text
        field_name: Name of the field (for error messages)

    Returns:
        The normalized query text

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_query("SELECT id, name FROM users;")
        'SELECT id, name FROM users'
        >>> validate_query("   ;")  # doctest: +SKIP
        ValidationError: query cannot be empty or whitespace-only
    """
    if not query or not isinstance(query, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    query = query.strip().rstrip(";").strip()

    if not query:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    return query
