import copy

from bulk_import.core.bulk_request import filter_attributes
from bulk_import.core.constants import SCIM2_USER_SCHEMA
from bulk_import.core.models import AttributeMapping
from bulk_import.core.scim_transformer import ScimTransformer, cell_value, special_family

from conftest import ENTERPRISE_SCHEMA, WSO2_SCHEMA


def mapping_entry(name, dialect, attribute):
    return AttributeMapping(
        attribute_name=name,
        mapped_local_claim_uri=f"http://wso2.org/claims/{name}",
        mapped_scim_attribute_uri=f"{dialect}:{attribute}",
        mapped_scim_claim_dialect_uri=dialect,
    )


def transform(headers, row, mapping, userstore=None):
    lowered = [header.lower() for header in headers]
    filtered = filter_attributes(lowered, mapping)
    return ScimTransformer(userstore=userstore).row_to_scim(row, filtered, lowered)


def test_username_and_email_end_to_end_body():
    mapping = [
        mapping_entry("username", SCIM2_USER_SCHEMA, "userName"),
        mapping_entry("email", SCIM2_USER_SCHEMA, "emails"),
    ]
    body = transform(["username", "email"], ["jdoe", "jdoe@example.com"], mapping)
    assert body == {
        "schema": [SCIM2_USER_SCHEMA],
        "userName": "jdoe",
        "emails": ["jdoe@example.com"],
    }


def test_secondary_userstore_prefixes_username(attribute_mapping):
    body = transform(["username"], ["jdoe"], attribute_mapping, userstore="PARTNERS")
    assert body["userName"] == "PARTNERS/jdoe"


def test_primary_userstore_leaves_username_verbatim(attribute_mapping):
    assert transform(["username"], ["jdoe"], attribute_mapping, userstore="primary")["userName"] == "jdoe"
    assert transform(["username"], ["jdoe"], attribute_mapping)["userName"] == "jdoe"


def test_ask_password_is_always_set(attribute_mapping):
    body = transform(["username"], ["jdoe"], attribute_mapping)
    assert body[WSO2_SCHEMA] == {"askPassword": "true"}
    assert body["schema"] == [SCIM2_USER_SCHEMA, WSO2_SCHEMA]


def test_ask_password_merges_into_existing_dialect_object(attribute_mapping):
    body = transform(["username", "nickname"], ["jdoe", "JD"], attribute_mapping)
    assert body[WSO2_SCHEMA] == {"nickNames": ["JD"], "askPassword": "true"}
    assert body["schema"].count(WSO2_SCHEMA) == 1


def test_phone_number_columns_share_one_list(attribute_mapping):
    body = transform(["username", "mobile", "telephone"], ["jdoe", "0771", "0112"], attribute_mapping)
    assert body["phoneNumbers"] == [
        {"type": "mobile", "value": "0771"},
        {"type": "work", "value": "0112"},
    ]


def test_plain_special_attribute_is_primary(attribute_mapping):
    body = transform(["username", "im"], ["jdoe", "jdoe-chat"], attribute_mapping)
    assert body["ims"] == [{"primary": True, "value": "jdoe-chat"}]


def test_home_address_fields(attribute_mapping):
    body = transform(
        ["username", "streetaddress", "country"], ["jdoe", "1 Main St", "Sri Lanka"], attribute_mapping
    )
    assert body["addresses"] == [
        {"type": "home", "streetAddress": "1 Main St"},
        {"type": "home", "country": "Sri Lanka"},
    ]


def test_complex_core_attribute(attribute_mapping):
    body = transform(["username", "givenname", "lastname"], ["jdoe", "John", "Doe"], attribute_mapping)
    assert body["name"] == {"givenName": "John", "familyName": "Doe"}


def test_extension_attributes_nest_under_dialect(attribute_mapping):
    body = transform(
        ["username", "department", "manager", "organization"],
        ["jdoe", "Engineering", "Jane", "Acme"],
        attribute_mapping,
    )
    assert body[ENTERPRISE_SCHEMA] == {
        "department": "Engineering",
        "manager": {"displayName": "Jane"},
        "organization": "Acme",
    }
    assert body["schema"] == [SCIM2_USER_SCHEMA, ENTERPRISE_SCHEMA, WSO2_SCHEMA]
    assert "department" not in body


def test_multi_valued_columns_accumulate(attribute_mapping):
    body = transform(
        ["username", "email", "otheremail"], ["jdoe", "jdoe@example.com", "john@home.example"], attribute_mapping
    )
    assert body["emails"] == ["jdoe@example.com", "john@home.example"]
    assert "emails#other" not in body


def test_multi_valued_complex_attribute_appends_objects():
    mapping = [
        mapping_entry("username", SCIM2_USER_SCHEMA, "userName"),
        mapping_entry("costcenter", ENTERPRISE_SCHEMA, "costCenters.code#1"),
        mapping_entry("costcenter2", ENTERPRISE_SCHEMA, "costCenters.code#2"),
    ]
    body = transform(["username", "costcenter", "costcenter2"], ["jdoe", "CC-1", "CC-2"], mapping)
    assert body[ENTERPRISE_SCHEMA]["costCenters"] == [{"code": "CC-1"}, {"code": "CC-2"}]


def test_missing_pinned_attribute_does_not_crash():
    mapping = [mapping_entry("username", SCIM2_USER_SCHEMA, "userName")]
    filtered = filter_attributes(["username"], mapping)
    assert filtered[-1] is None
    body = ScimTransformer().row_to_scim(["jdoe"], filtered, ["username"])
    assert body == {"schema": [SCIM2_USER_SCHEMA], "userName": "jdoe"}


def test_rows_produce_isolated_trees(attribute_mapping):
    headers = ["username", "mobile", "department"]
    filtered = filter_attributes(headers, attribute_mapping)
    transformer = ScimTransformer()

    first = transformer.row_to_scim(["jdoe", "0771", "Eng"], filtered, headers)
    snapshot = copy.deepcopy(first)
    second = transformer.row_to_scim(["asmith", "0772", "Ops"], filtered, headers)

    assert first == snapshot
    assert second["phoneNumbers"] == [{"type": "mobile", "value": "0772"}]
    assert first["phoneNumbers"] is not second["phoneNumbers"]
    assert first[ENTERPRISE_SCHEMA] is not second[ENTERPRISE_SCHEMA]


def test_special_family_and_cell_lookup():
    assert special_family("phoneNumbers") == "phoneNumbers"
    assert special_family("photos.thumbnail") == "photos"
    assert special_family("emails") is None
    assert cell_value(["jdoe", "x"], ["username", "email"], "EMAIL") == "x"
    assert cell_value(["jdoe"], ["username"], "email") is None


def typed_email_mapping():
    return [
        mapping_entry("username", SCIM2_USER_SCHEMA, "userName"),
        mapping_entry("emailaddress", SCIM2_USER_SCHEMA, "emails"),
        mapping_entry("emails.work", SCIM2_USER_SCHEMA, "emails.work"),
    ]


def test_plain_and_typed_email_columns_are_merged():
    body = transform(
        ["username", "emailaddress", "emails.work"], ["jdoe", "a@x.io", "w@x.io"], typed_email_mapping()
    )
    assert body["emails"] == [
        {"value": "a@x.io", "primary": True},
        {"type": "work", "value": "w@x.io"},
    ]


def test_typed_email_column_first_keeps_both_values():
    body = transform(
        ["username", "emails.work", "emailaddress"], ["jdoe", "w@x.io", "a@x.io"], typed_email_mapping()
    )
    assert body["emails"] == [
        {"type": "work", "value": "w@x.io"},
        {"value": "a@x.io", "primary": True},
    ]


def test_lone_typed_email_column_is_a_list_entry():
    body = transform(["username", "emails.work"], ["jdoe", "w@x.io"], typed_email_mapping())
    assert body["emails"] == [{"type": "work", "value": "w@x.io"}]
