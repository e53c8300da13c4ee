"""Shared constants for the bulk user import flow."""
from __future__ import annotations

# SCIM schemas
SCIM2_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
BULK_REQUEST_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:BulkRequest"

# Local claims are stored under this dialect; attribute names are derived by stripping it
LOCAL_CLAIM_DIALECT = "http://wso2.org/claims"

# Always sent so every imported user is asked to set a password
ASK_PASSWORD_ATTRIBUTE = "identity/askPassword"
ASK_PASSWORD_VALUE = "true"

PRIMARY_USERSTORE = "PRIMARY"

# Correlation id wire form: bulkId:<username>:<nonce>
BULK_ID_PREFIX = "bulkId"
BULK_ID_DELIMITER = ":"

USER_RESOURCE_TYPE = "User"
USERS_PATH = "/Users"

# Header / attribute rules (compared case-insensitively)
USERNAME_ATTRIBUTE = "userName"
REQUIRED_ATTRIBUTES = (USERNAME_ATTRIBUTE,)
BLOCKED_ATTRIBUTES = (
    "userid",
    "password",
    "groups",
    "roles",
    "created",
    "modified",
    "resourcetype",
    "location",
)

# Multi-valued complex families written as {type, value} / {primary, value} entries
SPECIAL_MULTI_VALUED_COMPLEX_ATTRIBUTES = ("phoneNumbers", "ims", "photos")

# Core attributes that are multi-valued per RFC 7643 even without a '#' marker
MULTI_VALUED_CORE_ATTRIBUTES = ("emails", "entitlements", "x509Certificates")

MULTI_VALUED_MARKER = "#"
HOME_ADDRESS_PREFIX = "addresses#home."

# Bulk response status code -> (message key, default English message)
STATUS_MESSAGES = {
    201: ("userCreatedMessage", "created"),
    202: ("userCreationAcceptedMessage", "accepted"),
    400: ("invalidDataMessage", "invalid data"),
    409: ("userAlreadyExistsMessage", "already exists"),
    500: ("internalErrorMessage", "internal error"),
}
DEFAULT_STATUS_MESSAGE = STATUS_MESSAGES[500]
SUCCESS_STATUS_CODES = (201, 202)
