"""
schemagen-inject: store a JSON-LD graph on a WordPress post as Rank Math rows.

Dry-run by default; nothing is written without --execute.

    schemagen-inject --slug ac-repair-houston --graph schema.json
    schemagen-inject --slug ac-repair-houston --graph schema.json --execute
    schemagen-inject --record-id 42 --rollback
    schemagen-inject --list-backups
    schemagen-inject --slug ac-repair-houston --graph schema.json --via-helper --execute
"""
import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from schemagen.adapters.wordpress import RankMathHelperClient
from schemagen.config import config
from schemagen.errors import NotFoundError, RecordNotFoundError, SchemaGenError, SchemaValidationError, StoreError
from schemagen.generators.validation import GraphValidator
from schemagen.persistence.backups import BackupIndex
from schemagen.persistence.meta_store import SQLMetaStore
from schemagen.persistence.mutation import SafeMutationStore, graph_document, split_graph
from schemagen.persistence.rankmath import schema_type_of
from schemagen.utils.logger import get_logger, set_trace_id

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_FOUND = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemagen-inject",
        description="Inject JSON-LD schemas into Rank Math postmeta (dry-run unless --execute).",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--slug", help="Post slug (published posts and pages only)")
    target.add_argument("--record-id", type=int, help="Post ID")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("--graph", metavar="FILE", help="JSON-LD document (@graph, entity or list)")
    action.add_argument("--rollback", action="store_true", help="Restore the latest backup")
    action.add_argument("--delete-all", action="store_true", help="Remove every schema row")
    action.add_argument("--list-backups", action="store_true", help="List stored backups")

    parser.add_argument("--execute", action="store_true", help="Commit the change (default is a dry run)")
    parser.add_argument("--no-backup", action="store_true", help="Skip the backup before writing")
    parser.add_argument("--primary-type", help="Schema type to flag as primary")
    parser.add_argument(
        "--via-helper",
        action="store_true",
        help="Write through the helper plugin REST API (HELPER_SITE_URL, HELPER_TOKEN) instead of the database",
    )
    return parser


def load_graph(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def resolve_record_id(store: SafeMutationStore, args: argparse.Namespace) -> int:
    if args.record_id is not None:
        return args.record_id
    record = store.store.find_record_by_slug(args.slug)
    if record is None:
        raise RecordNotFoundError(args.slug)
    return record.record_id


def emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run(args: argparse.Namespace, store: SafeMutationStore) -> int:
    if args.list_backups:
        emit({"backups": store.list_backups()})
        return EXIT_OK

    record_id = resolve_record_id(store, args)
    backup = not args.no_backup

    if args.rollback:
        result = store.rollback(record_id)
        emit(result.to_dict())
        return EXIT_OK

    if args.delete_all:
        result = store.delete_all(record_id, commit=args.execute, backup=backup)
        emit(result.to_dict())
        return EXIT_OK

    result = store.replace_all(
        record_id,
        load_graph(args.graph),
        commit=args.execute,
        backup=backup,
        primary_type=args.primary_type,
    )
    emit(result.to_dict())
    return EXIT_OK if result.success else EXIT_FAILED


async def run_helper(args: argparse.Namespace, client: RankMathHelperClient) -> int:
    """Same dry-run posture as run(), with the helper plugin doing the writes."""
    if args.record_id is not None:
        post_id = args.record_id
    else:
        post = await client.find_post(args.slug)
        if post is None:
            raise RecordNotFoundError(args.slug)
        post_id = int(post["post_id"])

    if args.delete_all:
        payload = {"success": True, "simulated": not args.execute, "postId": post_id}
        if args.execute:
            payload["response"] = await client.delete_schemas(post_id)
        else:
            payload["message"] = "[DRY-RUN] Would delete every schema through the helper plugin"
        emit(payload)
        return EXIT_OK

    document = graph_document(load_graph(args.graph))
    report = GraphValidator().validate(document)
    if not report.valid:
        raise SchemaValidationError(report)
    entities, skipped = split_graph(document, args.primary_type)
    schemas = [{"type": schema_type_of(e), "schema": e} for e in entities]

    payload = {
        "success": True,
        "simulated": not args.execute,
        "postId": post_id,
        "primaryType": schemas[0]["type"] if schemas else None,
        "schemaTypes": [s["type"] for s in schemas],
        "skipped": skipped,
    }
    if args.execute:
        payload["response"] = await client.insert_multiple(post_id, schemas)
    emit(payload)
    return EXIT_OK


def main(
    argv: Optional[List[str]] = None,
    store: Optional[SafeMutationStore] = None,
    helper: Optional[RankMathHelperClient] = None,
) -> int:
    """
    Entry point. Returns the process exit code:
    0 success, 1 failure, 2 record or backup not found.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.list_backups and args.slug is None and args.record_id is None:
        parser.error("--slug or --record-id is required")
    if not (args.list_backups or args.rollback or args.delete_all or args.graph):
        parser.error("one of --graph, --rollback, --delete-all or --list-backups is required")
    if args.via_helper and (args.rollback or args.list_backups):
        parser.error("--rollback and --list-backups need direct database access")

    trace_id = set_trace_id()
    logger.info(
        "cli_invocation",
        trace_id=trace_id,
        slug=args.slug,
        record_id=args.record_id,
        execute=args.execute,
        via_helper=args.via_helper,
    )

    try:
        if args.via_helper:
            if helper is None:
                if not config.is_helper_configured():
                    raise StoreError("Helper plugin not configured (set HELPER_SITE_URL and HELPER_TOKEN)")
                helper = RankMathHelperClient()
            return asyncio.run(run_helper(args, helper))
        if store is None:
            store = SafeMutationStore(SQLMetaStore.from_config(), BackupIndex.from_config())
        return run(args, store)
    except NotFoundError as e:
        emit({"success": False, "error": str(e)})
        return EXIT_NOT_FOUND
    except SchemaValidationError as e:
        emit({"success": False, "error": str(e), "validation": e.report.to_dict()})
        return EXIT_FAILED
    except (SchemaGenError, OSError, ValueError) as e:
        logger.error("cli_failed", error=str(e), error_type=type(e).__name__)
        emit({"success": False, "error": str(e)})
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
