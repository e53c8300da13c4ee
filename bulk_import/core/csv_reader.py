"""Read an uploaded CSV file into headers and rows."""
from __future__ import annotations
import csv
import io

from .exceptions import ValidationError
from .models import ParsedCSV, ValidationErrorDescriptor

KILOBYTE = 1024
DEFAULT_MAX_FILE_SIZE_KB = 500
DEFAULT_MAX_USER_COUNT = 100


def _error(key: str, **values: str) -> ValidationError:
    return ValidationError(
        ValidationErrorDescriptor(
            message_key=f"{key}.message",
            description_key=f"{key}.description",
            description_values=values,
        )
    )


def read_csv(
    raw: bytes,
    max_file_size_kb: int = DEFAULT_MAX_FILE_SIZE_KB,
    max_user_count: int = DEFAULT_MAX_USER_COUNT,
) -> ParsedCSV:
    """Parse CSV bytes, enforcing the upload limits.

    The first record is the header row. Blank lines are skipped; row lengths
    are left as-is for the validator to check.

    Args:
        raw: File contents (UTF-8, optional BOM)
        max_file_size_kb: Maximum accepted file size
        max_user_count: Maximum number of data rows

    Raises:
        ValidationError: On oversized, undecodable or too-long files
    """
    if len(raw) > max_file_size_kb * KILOBYTE:
        raise _error("fileSizeLimitError", limit=f"{max_file_size_kb} KB")

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise _error("fileEncodingError")

    records = [record for record in csv.reader(io.StringIO(text, newline="")) if record]
    if not records:
        return ParsedCSV(headers=[], rows=[])

    headers, rows = records[0], records[1:]
    if len(rows) > max_user_count:
        raise _error("rowCountLimitError", limit=str(max_user_count))

    return ParsedCSV(headers=headers, rows=rows)
