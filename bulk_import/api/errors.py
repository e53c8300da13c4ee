"""Error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from bulk_import.core.exceptions import BulkImportError


def register_error_handlers(app):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(BulkImportError)
    def handle_bulk_import_error(error: BulkImportError):
        """Validation, mapping and submission failures."""
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad Request", "message": error.description}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": error.description}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        return jsonify({"error": "Payload Too Large", "message": "CSV file exceeds the allowed size"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
