"""Background worker for processing generation jobs."""

import logging
import time

import sqlalchemy

from autoblog.config import settings
from autoblog.database import SessionLocal
from autoblog.services.job_queue import JobQueue

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


class Worker:
    """Polls the job queue, recovering stuck jobs before each pick."""

    def __init__(self, queue: JobQueue = None, session_factory=SessionLocal):
        """Initialize worker."""
        self.queue = queue or JobQueue(session_factory=session_factory)
        self.session_factory = session_factory
        self.poll_interval = settings.WORKER_POLL_INTERVAL

    def wait_for_database(self, max_wait: int = 60) -> bool:
        """Block until the generation_jobs table is queryable or max_wait seconds pass."""
        waited = 0
        while waited < max_wait:
            try:
                db = self.session_factory()
                try:
                    db.execute(sqlalchemy.text("SELECT 1 FROM generation_jobs LIMIT 1"))
                finally:
                    db.close()
                logger.info("Database is ready, starting worker loop")
                return True
            except sqlalchemy.exc.SQLAlchemyError as e:
                if "does not exist" in str(e) or "no such table" in str(e):
                    logger.info(f"Waiting for migrations to complete... ({waited}s)")
                else:
                    logger.error(f"Database error: {e}")
                time.sleep(2)
                waited += 2

        logger.error(f"Database not ready after {max_wait} seconds, starting anyway...")
        return False

    def run_once(self) -> bool:
        """
        Recover stuck jobs, then process the oldest queued job.

        Returns:
            True if a job was processed
        """
        recovered = self.queue.recover_stuck_jobs()
        if recovered:
            logger.warning(f"Recovered {recovered} stuck job(s)")

        job_id = self.queue.next_queued_job_id()
        if not job_id:
            return False
        return self.queue.process(job_id)

    def run(self, stop_event=None):
        """Main worker loop.

        Args:
            stop_event: Optional threading.Event to signal worker to stop
        """
        logger.info("Worker started - waiting for database to be ready...")
        self.wait_for_database()

        while True:
            if stop_event and stop_event.is_set():
                logger.info("Worker stop signal received")
                break

            try:
                if not self.run_once():
                    time.sleep(self.poll_interval)
            except KeyboardInterrupt:
                logger.info("Worker shutting down")
                break
            except Exception as e:
                logger.error(f"Worker error: {e}", exc_info=True)
                time.sleep(self.poll_interval)


def worker_loop(stop_event=None):
    """Run worker loop (for use as background thread).

    Args:
        stop_event: Optional threading.Event to signal worker to stop
    """
    worker = Worker()
    worker.run(stop_event=stop_event)


def main():
    """Entry point for standalone worker."""
    worker = Worker()
    worker.run()


if __name__ == "__main__":
    main()
