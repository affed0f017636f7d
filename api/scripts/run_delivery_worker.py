import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from nps_api.config import WORKER_BATCH_SIZE, WORKER_POLL_INTERVAL_SECONDS
from nps_api.container import build_container
from nps_api.database import Base, SessionLocal, engine
from nps_api.logging_config import configure_logging

logger = logging.getLogger("nps_api.worker")


def main() -> None:
    parser = argparse.ArgumentParser(description="Drain the survey dispatch queue and deliver survey invitations")
    parser.add_argument("--poll-interval", type=float, default=WORKER_POLL_INTERVAL_SECONDS)
    parser.add_argument("--batch-size", type=int, default=WORKER_BATCH_SIZE)
    parser.add_argument("--once", action="store_true", help="Poll a single batch and exit")
    args = parser.parse_args()

    configure_logging()
    Base.metadata.create_all(bind=engine)
    container = build_container(SessionLocal)

    if args.once:
        handled = container.worker.poll_once(max_messages=args.batch_size)
        print(json.dumps({"handled": handled, "remaining": container.queue.approximate_count()}))
        return

    stop_event = threading.Event()

    def _stop(signum, _frame) -> None:
        logger.info("Received signal %s, stopping worker", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    container.worker.run_forever(args.poll_interval, stop_event=stop_event, max_messages=args.batch_size)


if __name__ == "__main__":
    main()
