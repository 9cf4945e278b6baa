from enhancer.analysis.factory import AnalyzerFactory
from enhancer.config.settings import Settings
from enhancer.database.repositories.result_repository import ResultRepository
from enhancer.documents.factory import PdfReaderFactory
from enhancer.documents.loader import DocumentLoader
from enhancer.imagegen.factory import ImageGeneratorFactory
from enhancer.pipeline.cache import StageCache
from enhancer.pipeline.orchestrator import PipelineOrchestrator
from enhancer.pipeline.rationing import QuotaRationingPolicy
from enhancer.pipeline.stages.analysis import InitialAnalysisStage
from enhancer.pipeline.stages.assets import AssetGenerationStage
from enhancer.pipeline.stages.composition import FinalCompositionStage
from enhancer.pipeline.stages.planning import EnhancementPlanningStage
from enhancer.storage.factory import StorageFactory


def build_orchestrator(
    settings: Settings,
    result_repo: ResultRepository | None = None,
    cache: StageCache | None = None,
) -> PipelineOrchestrator:
    """Build an orchestrator with every collaborator chosen by settings.

    Pass a shared `cache` to let several orchestrators reuse stage results.
    """
    storage = StorageFactory.create(settings)
    analyzer = AnalyzerFactory.create(settings)
    pdf_reader = PdfReaderFactory.create(settings)
    return PipelineOrchestrator(
        analysis_stage=InitialAnalysisStage(
            analyzer=analyzer,
            storage=storage,
            loader=DocumentLoader(pdf_reader, dpi=settings.render_dpi),
        ),
        planning_stage=EnhancementPlanningStage(
            analyzer=analyzer,
            max_workers=settings.planning_max_workers,
        ),
        asset_stage=AssetGenerationStage(
            storage=storage,
            image_generator=ImageGeneratorFactory.create(settings),
        ),
        composition_stage=FinalCompositionStage(storage=storage, pdf_reader=pdf_reader),
        cache=cache or StageCache(ttl_seconds=settings.cache_ttl_seconds),
        result_repo=result_repo,
        rationing=QuotaRationingPolicy(
            quota=settings.basic_tier_asset_quota,
            window_seconds=settings.basic_tier_quota_window_seconds,
        ),
    )
