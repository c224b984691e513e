"""Queue Zoom recording sync for every batch with unsynced meetings.

Intended for cron, e.g. every 30 minutes:
  python scripts/sync_recordings.py                 # queue all pending batches
  python scripts/sync_recordings.py --batch <id>    # sync one batch in the foreground
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings
from app.database import SessionLocal
import app.models  # noqa: F401
from app.services import recording_sync_service
from app.services.zoom_client import get_zoom_client


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--batch", help="Sync a single batch synchronously")
    args = parser.parse_args()

    if not settings.zoom_configured():
        print("ZOOM_ACCOUNT_ID / ZOOM_CLIENT_ID / ZOOM_CLIENT_SECRET must be set.")
        sys.exit(1)

    db = SessionLocal()
    try:
        if args.batch:
            summary = recording_sync_service.sync_batch(db, args.batch, get_zoom_client())
            print("Recording sync result")
            for key in ("batch_id", "checked", "synced", "failed", "recordings_added"):
                print(f"  {key}: {summary[key]}")
            return
        dispatcher = recording_sync_service.get_sync_dispatcher()
        queued = recording_sync_service.sync_all_batches(db, dispatcher)
    finally:
        db.close()

    print(f"Queued batches: {len(queued)}")
    for batch_id in queued:
        print(f"  - {batch_id}")
    # 풀 작업이 끝날 때까지 기다린 뒤 종료합니다.
    dispatcher.shutdown()


if __name__ == "__main__":
    main()
