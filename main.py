"""Command line front-end for the offline operation queue."""
from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import List, Optional

from core.settings import DB_PATH, SESSION_PATH, SYNC
from services.api_client import ApiClient
from services.offline_queue import OfflineQueue
from services.session_store import SessionStore
from services.sync_manager import SyncManager
from services.sync_service import Synchronizer
from storage.operation_log import OperationLog


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tralok-sync", description=__doc__ or "")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Queue database (default: %(default)s)")
    parser.add_argument(
        "--session",
        type=Path,
        default=SESSION_PATH,
        help="Session file holding the bearer token (default: %(default)s)",
    )
    parser.add_argument("--api", default=SYNC.api_base_url, help="API base URL (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    enqueue = sub.add_parser("enqueue", help="Queue a write for later replay")
    enqueue.add_argument("method")
    enqueue.add_argument("url")
    enqueue.add_argument("--body", help="JSON payload")

    sub.add_parser("list", help="Show every queued operation")
    sub.add_parser("status", help="Show queue counters and the last sync")
    sub.add_parser("dead", help="Show operations that will not be retried")

    flush = sub.add_parser("flush", help="Replay the queue now")
    flush.add_argument("--token", help="Bearer token (default: the stored session token)")
    flush.add_argument("--force", action="store_true", help="Ignore retry backoff")

    login = sub.add_parser("login", help="Store the bearer token used for sync")
    login.add_argument("token")
    sub.add_parser("logout", help="Forget the stored token")

    revive = sub.add_parser("revive", help="Put a dead operation back in the queue")
    revive.add_argument("id")
    discard = sub.add_parser("discard", help="Drop a queued operation")
    discard.add_argument("id")

    watch = sub.add_parser("watch", help="Sync automatically whenever the API is reachable")
    watch.add_argument("--interval", type=float, default=SYNC.probe_interval_sec)
    return parser


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    queue = OfflineQueue(OperationLog(args.db))
    sessions = SessionStore(args.session)
    client = ApiClient(base_url=args.api)
    manager = SyncManager(Synchronizer(queue, client), sessions)
    try:
        return _run(args, queue, sessions, manager)
    finally:
        client.close()


def _run(args, queue: OfflineQueue, sessions: SessionStore, manager: SyncManager) -> int:
    if args.command == "enqueue":
        try:
            body = json.loads(args.body) if args.body else None
        except json.JSONDecodeError as exc:
            print(f"--body is not valid JSON: {exc}", file=sys.stderr)
            return 1
        print(queue.enqueue(args.url, args.method, body))
    elif args.command == "list":
        _print_json([entry.to_dict() for entry in queue.get_all()])
    elif args.command == "dead":
        _print_json([entry.to_dict() for entry in queue.dead_letters()])
    elif args.command == "status":
        last_at = sessions.get_last_flush_timestamp()
        _print_json(
            {
                "queue": queue.status(),
                "pending": queue.pending_count(),
                "lastFlush": sessions.get_last_flush(),
                "lastFlushAt": last_at.isoformat() if last_at else None,
            }
        )
    elif args.command == "flush":
        token = args.token or sessions.get_token()
        if not token:
            print("No session token; run 'login' first or pass --token", file=sys.stderr)
            return 1
        result = manager.flush_now(token, force=args.force)
        if result.busy:
            print("A sync pass is already running", file=sys.stderr)
            return 1
        _print_json(result.to_dict())
        return 0 if result.failed == 0 else 2
    elif args.command == "login":
        sessions.set_token(args.token)
    elif args.command == "logout":
        sessions.clear_token()
    elif args.command == "revive":
        if queue.revive(args.id) is None:
            print(f"Unknown operation {args.id}", file=sys.stderr)
            return 1
    elif args.command == "discard":
        if not queue.discard(args.id):
            print(f"Unknown operation {args.id}", file=sys.stderr)
            return 1
    elif args.command == "watch":
        manager.monitor.interval = args.interval
        with manager:
            try:
                while True:
                    time.sleep(1)
            except KeyboardInterrupt:
                pass
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
