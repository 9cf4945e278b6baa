import io
import random
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from enhancer.imagegen.exceptions import ImageGenerationError
from enhancer.pipeline.cancellation import CancellationToken
from enhancer.pipeline.exceptions import CancellationRequested, EnhancementError
from enhancer.pipeline.models import (
    Approach,
    AssetRequirements,
    BackgroundRequirement,
    BackgroundStyle,
    DecorationPlacement,
    DecorationType,
    DecorativeRequirement,
    DocumentType,
    EnhancementPlan,
    FileType,
    GraphicRequirement,
    GraphicType,
    PipelineContext,
    Strategy,
    SubscriptionTier,
)
from enhancer.pipeline.stages.assets import AssetGenerationStage, background_prompt, element_position
from enhancer.pipeline.stages.planning import DOCUMENT_PROFILES
from enhancer.storage.exceptions import StorageError
from enhancer.storage.local_storage import LocalFileStorage


def _context(tier: SubscriptionTier = SubscriptionTier.PRO) -> PipelineContext:
    return PipelineContext(
        document_id="doc-1",
        user_id="user-1",
        subscription_tier=tier,
        original_file_url="https://files.example.com/doc-1.png",
        file_type=FileType.PNG,
        start_time=0.0,
    )


def _plan(requirements: AssetRequirements | None) -> EnhancementPlan:
    return EnhancementPlan(
        strategy=Strategy(Approach.MODERATE, (), 50.0),
        document_type=DocumentType.GENERAL,
        style_profile=DOCUMENT_PROFILES[DocumentType.GENERAL],
        asset_requirements=requirements,
    )


def _requirements(**overrides: object) -> AssetRequirements:
    fields: dict[str, object] = {
        "backgrounds": (BackgroundRequirement(BackgroundStyle.GRADIENT, "calm", ("#FFFFFF", "#EEEEEE"), 0.1),),
        "decorative_elements": (
            DecorativeRequirement(DecorationType.ICON, "flat", 2, DecorationPlacement.CORNERS),
        ),
        "educational_graphics": (GraphicRequirement(GraphicType.CHART, "flat", 200, 100),),
    }
    fields.update(overrides)
    return AssetRequirements(**fields)  # type: ignore[arg-type]


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def _make_stage(image_generator: MagicMock | None = None) -> tuple[AssetGenerationStage, MagicMock]:
    storage = MagicMock()
    storage.upload.side_effect = lambda data, key, content_type: f"https://cdn/{key}"
    stage = AssetGenerationStage(storage=storage, image_generator=image_generator, clock=lambda: 1.5)
    return stage, storage


class TestElementPosition:
    def test_corners_cycle(self) -> None:
        rng = random.Random(0)
        positions = [element_position(DecorationPlacement.CORNERS, i, 5, rng) for i in range(5)]

        assert positions[0] == (50.0, 50.0)
        assert positions[3] == (1742.0, 974.0)
        assert positions[4] == positions[0]

    def test_single_edge_element_is_top_center(self) -> None:
        assert element_position(DecorationPlacement.EDGES, 0, 1, random.Random(0)) == (896.0, 50.0)

    def test_edges_alternate_top_and_bottom(self) -> None:
        first = element_position(DecorationPlacement.EDGES, 0, 3, random.Random(0))
        second = element_position(DecorationPlacement.EDGES, 1, 3, random.Random(0))

        assert first == (100.0, 50.0)
        assert second == (896.0, 974.0)

    def test_grid(self) -> None:
        positions = [element_position(DecorationPlacement.GRID, i, 4, random.Random(0)) for i in range(4)]

        assert positions[0] == (100.0, 100.0)
        assert positions[3] == (896.0, 512.0)

    def test_random_is_seeded_and_inside(self) -> None:
        x, y = element_position(DecorationPlacement.RANDOM, 0, 1, random.Random("doc-1-0"))

        assert (x, y) == element_position(DecorationPlacement.RANDOM, 0, 1, random.Random("doc-1-0"))
        assert 100 <= x <= 1692 and 100 <= y <= 924


class TestAssetGenerationStage:
    def test_no_requirements_means_no_assets(self) -> None:
        stage, storage = _make_stage()

        assets = stage.run(_context(), _plan(None))

        assert assets.total_assets == 0
        storage.upload.assert_not_called()

    def test_generates_and_uploads_everything(self) -> None:
        stage, storage = _make_stage()

        assets = stage.run(_context(), _plan(_requirements()))

        assert len(assets.backgrounds) == 1
        assert len(assets.decorative_elements) == 2
        assert len(assets.educational_graphics) == 1
        assert storage.upload.call_count == 4
        assert assets.storage_used == (
            sum(b.file_size for b in assets.backgrounds)
            + sum(e.file_size for e in assets.decorative_elements)
            + sum(g.file_size for g in assets.educational_graphics)
        )
        assert assets.backgrounds[0].url == "https://cdn/assets/user-1/doc-1/bg-1500-1.png"
        assert assets.backgrounds[0].metadata["source"] == "procedural"
        assert assets.educational_graphics[0].caption == "Data visualization"

    def test_keys_stay_unique_within_one_millisecond(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path)
        stage = AssetGenerationStage(storage=storage, clock=lambda: 1000.0)
        background = BackgroundRequirement(BackgroundStyle.GRADIENT, "calm", ("#FFFFFF", "#EEEEEE"), 0.1)
        requirements = _requirements(
            backgrounds=(background, background),
            decorative_elements=(
                DecorativeRequirement(DecorationType.ICON, "flat", 2, DecorationPlacement.CORNERS),
                DecorativeRequirement(DecorationType.SHAPE, "flat", 1, DecorationPlacement.EDGES),
            ),
            educational_graphics=(
                GraphicRequirement(GraphicType.CHART, "flat", 200, 100),
                GraphicRequirement(GraphicType.DIAGRAM, "flat", 200, 100),
            ),
        )

        assets = stage.run(_context(), _plan(requirements))

        urls = (
            [b.url for b in assets.backgrounds]
            + [e.url for e in assets.decorative_elements]
            + [g.url for g in assets.educational_graphics]
        )
        assert len(urls) == 7
        assert len(set(urls)) == 7
        assert len(list((tmp_path / "assets" / "user-1" / "doc-1").iterdir())) == 7

    def test_basic_tier_gets_no_graphics(self) -> None:
        stage, _storage = _make_stage()

        assets = stage.run(_context(SubscriptionTier.BASIC), _plan(_requirements()))

        assert assets.educational_graphics == ()

    def test_failed_upload_skips_only_that_asset(self) -> None:
        stage, storage = _make_stage()
        storage.upload.side_effect = [StorageError("full"), "u1", "u2", "u3"]

        assets = stage.run(_context(), _plan(_requirements()))

        assert assets.backgrounds == ()
        assert [e.id for e in assets.decorative_elements] == ["elem-1", "elem-2"]
        assert len(assets.educational_graphics) == 1

    def test_image_background_without_ai_becomes_pattern(self) -> None:
        stage, _storage = _make_stage()
        requirements = _requirements(
            backgrounds=(BackgroundRequirement(BackgroundStyle.IMAGE, "abstract", ("#000000",), 0.1),)
        )

        assets = stage.run(_context(SubscriptionTier.PREMIUM), _plan(requirements))

        assert assets.backgrounds[0].style is BackgroundStyle.PATTERN

    def test_premium_uses_image_generator(self) -> None:
        generator = MagicMock()
        generator.generate.return_value = MagicMock(image_bytes=_png(1024, 1024))
        stage, _storage = _make_stage(generator)
        requirements = _requirements(
            backgrounds=(BackgroundRequirement(BackgroundStyle.IMAGE, "abstract", ("#000000",), 0.1),)
        )

        assets = stage.run(_context(SubscriptionTier.PREMIUM), _plan(requirements))

        background = assets.backgrounds[0]
        assert background.style is BackgroundStyle.IMAGE
        assert background.metadata["source"] == "ai"
        assert (background.width, background.height) == (1792, 1024)
        assert generator.generate.call_count == 2

    def test_generator_failure_falls_back_to_procedural(self) -> None:
        generator = MagicMock()
        generator.generate.side_effect = ImageGenerationError("quota")
        stage, _storage = _make_stage(generator)

        assets = stage.run(_context(SubscriptionTier.PREMIUM), _plan(_requirements()))

        assert len(assets.educational_graphics) == 1

    def test_pro_never_calls_generator(self) -> None:
        generator = MagicMock()
        stage, _storage = _make_stage(generator)

        stage.run(_context(SubscriptionTier.PRO), _plan(_requirements()))

        generator.generate.assert_not_called()

    def test_cancellation(self) -> None:
        stage, _storage = _make_stage()
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationRequested):
            stage.run(_context(), _plan(_requirements()), token)

    def test_generation_without_generator_raises(self) -> None:
        stage, _storage = _make_stage()

        with pytest.raises(EnhancementError, match="without an image generator"):
            stage._generate("prompt", _context(SubscriptionTier.PREMIUM), 100, 100, None)


def test_background_prompt_mentions_theme_and_colors() -> None:
    prompt = background_prompt(BackgroundRequirement(BackgroundStyle.IMAGE, "ocean", ("#0000FF", "#00FFFF"), 0.2))

    assert "ocean background" in prompt
    assert "#0000FF, #00FFFF" in prompt
