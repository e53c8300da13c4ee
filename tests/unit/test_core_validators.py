import pytest

from bulk_import.core import validators
from bulk_import.core.exceptions import ValidationError
from bulk_import.core.models import ParsedCSV

KNOWN = ["username", "email", "givenname", "lastname", "mobile", "userid"]


def validate(headers, rows, known=KNOWN):
    return validators.CSVValidator().validate(ParsedCSV(headers=headers, rows=rows), known)


class TestJoinWithAnd:
    @pytest.mark.parametrize(
        "items, expected",
        [
            ([], ""),
            (["email"], "email"),
            (["email", "mobile"], "email and mobile"),
            (["email", "mobile", "country"], "email, mobile and country"),
        ],
    )
    def test_join(self, items, expected):
        assert validators.join_with_and(items) == expected


class TestCSVValidator:
    def test_valid_file(self):
        result = validate(["username", "email"], [["jdoe", "jdoe@example.com"]])
        assert result.valid
        assert result.error is None

    def test_header_matching_is_case_insensitive(self):
        assert validate(["UserName", "Email"], [["jdoe", "jdoe@example.com"]]).valid

    @pytest.mark.parametrize(
        "headers, rows, key",
        [
            ([], [["jdoe"]], "emptyRowError"),
            (["username"], [], "emptyRowError"),
            (["username", "email"], [["jdoe"]], "columnMismatchError"),
            (["username", "  "], [["jdoe", "x"]], "emptyHeaderError"),
            (["email"], [["jdoe@example.com"]], "missingRequiredHeaderError"),
            (["username", "userid"], [["jdoe", "1"]], "blockedHeaderError"),
            (["username", "email", "EMAIL"], [["jdoe", "a", "b"]], "duplicateHeaderError"),
            (["username", "favouritecolour"], [["jdoe", "blue"]], "invalidHeaderError"),
        ],
    )
    def test_each_rule(self, headers, rows, key):
        result = validate(headers, rows)
        assert not result.valid
        assert result.error.message_key == f"{key}.message"
        assert result.error.description_key == f"{key}.description"

    def test_missing_required_header_reported_before_duplicates(self):
        result = validate(["email", "Email"], [["a", "b"]])
        assert result.error.message_key == "missingRequiredHeaderError.message"
        assert result.error.description_values == {"headers": "userName"}

    def test_column_mismatch_reported_before_header_problems(self):
        result = validate(["email", "email"], [["a"]])
        assert result.error.message_key == "columnMismatchError.message"
        assert result.error.description_values == {}

    def test_offending_headers_are_listed(self):
        result = validate(["username", "shoe", "hat", "scarf"], [["jdoe", "1", "2", "3"]])
        assert result.error.description_values == {"headers": "shoe, hat and scarf"}

    def test_duplicates_are_listed_lowercased(self):
        result = validate(["username", "Email", "EMAIL"], [["jdoe", "a", "b"]])
        assert result.error.description_values == {"headers": "email"}

    def test_unrecognized_headers_are_rejected_not_ignored(self):
        result = validate(["username", "email", "extra"], [["jdoe", "a", "b"]], known=["username", "email"])
        assert result.error.message_key == "invalidHeaderError.message"

    def test_validate_or_raise(self):
        with pytest.raises(ValidationError) as excinfo:
            validators.CSVValidator().validate_or_raise(ParsedCSV(headers=[], rows=[]), KNOWN)
        assert excinfo.value.descriptor.message_key == "emptyRowError.message"
        assert excinfo.value.to_dict()["messageKey"] == "emptyRowError.message"
