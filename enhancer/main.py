from enhancer.config.settings import Settings
from enhancer.database.connection import close_pool, init_pool
from enhancer.database.repositories.job_repository import JobRepository
from enhancer.database.repositories.result_repository import ResultRepository
from enhancer.logging.logger import Log
from enhancer.pipeline.builder import build_orchestrator
from enhancer.worker.job_runner import JobRunner
from enhancer.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build pipeline -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        orchestrator = build_orchestrator(settings, result_repo=ResultRepository())
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(orchestrator, job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
