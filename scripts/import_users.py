"""Command-line bulk user import against a SCIM identity server.

This module serves as a CLI wrapper around bulk_import.core.import_service.
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bulk_import.core.exceptions import BulkImportError, ValidationError
from bulk_import.core.identity_server import IdentityServerError, create_client
from bulk_import.core.import_service import BulkUserImportService


def _print_result(result, summary) -> None:
    print(
        f"{result.outcome.value.upper():8} {result.username:32} "
        f"{result.http_status_code or '-':>4} {result.status_message} "
        f"[{summary['successCount']} ok / {summary['failedCount']} failed]"
    )


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="SCIM bulk user import")
    parser.add_argument("--is-url", default=os.environ.get("IDENTITY_SERVER_URL", "https://localhost:9443"))
    parser.add_argument("--client-id", default=os.environ.get("IS_SERVICE_CLIENT_ID"))
    parser.add_argument("--client-secret", default=os.environ.get("IS_SERVICE_CLIENT_SECRET"))
    parser.add_argument("--admin-user", default=os.environ.get("IS_ADMIN_USERNAME"))
    parser.add_argument("--admin-pass", default=os.environ.get("IS_ADMIN_PASSWORD"))
    parser.add_argument("--userstore", default=os.environ.get("BULK_IMPORT_USERSTORE", "PRIMARY"))
    parser.add_argument("--max-users", type=int, default=int(os.environ.get("BULK_IMPORT_MAX_USER_COUNT", "100")))
    parser.add_argument("--max-file-size-kb", type=int,
                        default=int(os.environ.get("BULK_IMPORT_MAX_FILE_SIZE_KB", "500")))
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification")
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))

    sub = parser.add_subparsers(dest="cmd")

    sm = sub.add_parser("mapping", help="Print the resolved attribute mapping")
    sm.add_argument("--json", action="store_true", help="Print the mapping as JSON")

    sv = sub.add_parser("validate", help="Validate a CSV file and print the bulk request")
    sv.add_argument("file", type=Path)

    si = sub.add_parser("import", help="Import users from a CSV file")
    si.add_argument("file", type=Path)

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    if not (args.client_id and args.client_secret) and not (args.admin_user and args.admin_pass):
        parser.error("Provide --client-id/--client-secret or --admin-user/--admin-pass")

    try:
        client = create_client(
            args.is_url,
            client_id=args.client_id,
            client_secret=args.client_secret,
            username=args.admin_user,
            password=args.admin_pass,
            verify=not args.insecure,
        )
        service = BulkUserImportService(
            client,
            userstore=args.userstore,
            operator=args.operator,
            max_file_size_kb=args.max_file_size_kb,
            max_user_count=args.max_users,
        )

        if args.cmd == "mapping":
            mapping = service.resolve_mapping()
            if args.json:
                print(json.dumps([attribute.to_dict() for attribute in mapping], indent=2))
            else:
                for attribute in mapping:
                    print(f"{attribute.attribute_name:40} {attribute.mapped_scim_attribute_uri}")
        elif args.cmd == "validate":
            _, envelope = service.prepare(service.read(args.file.read_bytes()))
            print(json.dumps(envelope.to_dict(), indent=2))
        elif args.cmd == "import":
            report = service.import_file(args.file.read_bytes(), on_result=_print_result)
            summary = report.summary.snapshot()
            print(f"Done: {summary['successCount']} succeeded, {summary['failedCount']} failed")
            if summary["failedCount"]:
                sys.exit(2)
    except ValidationError as e:
        descriptor = e.descriptor
        detail = descriptor.description_values.get("headers", "")
        print(f"[bulk-import] Invalid CSV: {descriptor.message_key} {detail}".rstrip(), file=sys.stderr)
        sys.exit(1)
    except (BulkImportError, IdentityServerError, OSError) as e:
        print(f"[bulk-import] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
