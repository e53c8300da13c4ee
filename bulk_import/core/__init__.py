"""Core Business Logic Module

Bulk user import logic, independent of Flask.

Module Structure:
    - identity_server/     : Low-level identity server REST client
    - claim_mapping.py     : Claim-mapping resolver (attribute name -> SCIM URI)
    - csv_reader.py        : CSV bytes -> headers and rows, with upload limits
    - validators.py        : Fail-fast CSV header validation
    - scim_transformer.py  : CSV row -> SCIM User resource
    - bulk_request.py      : SCIM BulkRequest assembly
    - bulk_response.py     : BulkResponse interpretation and summary
    - import_service.py    : End-to-end import orchestration

Import explicitly when needed:
    from bulk_import.core.import_service import BulkUserImportService
    from bulk_import.core.validators import CSVValidator
"""
