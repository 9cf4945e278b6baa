import pytest

from enhancer.config.settings import Settings
from enhancer.database.repositories.job_repository import JobRepository
from enhancer.database.repositories.result_repository import ResultRepository
from enhancer.pipeline.builder import build_orchestrator
from enhancer.worker.job_runner import JobRunner
from enhancer.worker.worker import Worker


@pytest.mark.integration
class TestWorkerIntegration:
    def test_worker_claims_and_completes_one_job(
        self,
        insert_job,
        original_on_disk: str,
        pipeline_settings: Settings,
    ) -> None:
        seeded = insert_job(original_file_url=original_on_disk)
        orchestrator = build_orchestrator(pipeline_settings, result_repo=ResultRepository())
        job_repo = JobRepository(max_attempts=pipeline_settings.max_job_attempts)
        job_runner = JobRunner(orchestrator, job_repo, pipeline_settings)
        worker = Worker(job_repo, job_runner, pipeline_settings)

        worker.run(max_jobs=1)

        job = job_repo.find_by_id(seeded.id)
        assert job is not None
        assert job.status == "done"
        assert job.progress == 100
        assert job.result_url is not None
        assert job.result_url.startswith(f"local://enhanced/user-it/{seeded.document_id}/")
        stored = ResultRepository().find_by_pipeline_id(orchestrator.get_state().pipeline_id)
        assert stored is not None
        assert stored.status == "completed"
        assert stored.quality_improvement > 0
