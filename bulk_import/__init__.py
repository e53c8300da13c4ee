"""Bulk user import for a SCIM identity store.

To use the Flask app:
    from bulk_import.flask_app import create_app

To run an import from code:
    from bulk_import.core.import_service import BulkUserImportService
"""
# flask_app is not imported here so the CLI works without creating an app
