import base64
from unittest.mock import MagicMock, patch

import openai
import pytest

from enhancer.documents.images import open_image
from enhancer.imagegen.example_image_adapter import ExampleImageAdapter
from enhancer.imagegen.exceptions import ImageGenerationError
from enhancer.imagegen.factory import ImageGeneratorFactory
from enhancer.imagegen.generator import ImageGenerator, StyleOptions
from enhancer.imagegen.openai_image_adapter import OpenAIImageAdapter
from enhancer.imagegen.policy import closest_size, resolve_model
from enhancer.pipeline.cancellation import CancellationToken
from enhancer.pipeline.exceptions import CancellationRequested
from enhancer.pipeline.models import SubscriptionTier


class TestResolveModel:
    def test_pro_defaults_to_dall_e_2(self) -> None:
        assert resolve_model(SubscriptionTier.PRO) == "dall-e-2"

    def test_premium_defaults_to_dall_e_3(self) -> None:
        assert resolve_model(SubscriptionTier.PREMIUM) == "dall-e-3"

    def test_premium_may_request_gpt_image(self) -> None:
        assert resolve_model(SubscriptionTier.PREMIUM, "gpt-image-1") == "gpt-image-1"

    def test_pro_may_not_request_premium_model(self) -> None:
        with pytest.raises(ImageGenerationError, match="not available for tier 'pro'"):
            resolve_model(SubscriptionTier.PRO, "dall-e-3")

    @pytest.mark.parametrize("tier", [SubscriptionTier.FREE, SubscriptionTier.BASIC])
    def test_lower_tiers_have_no_models(self, tier: SubscriptionTier) -> None:
        with pytest.raises(ImageGenerationError, match="not available"):
            resolve_model(tier)


class TestClosestSize:
    def test_landscape_request(self) -> None:
        assert closest_size("dall-e-3", 1792, 1024) == "1792x1024"

    def test_square_model_prefers_largest(self) -> None:
        assert closest_size("dall-e-2", 400, 300) == "1024x1024"

    def test_unknown_model_is_square(self) -> None:
        assert closest_size("other", 10, 20) == "1024x1024"


class TestImageGenerator:
    def test_generates_with_example_adapter(self) -> None:
        generator = ImageGenerator(ExampleImageAdapter())

        result = generator.generate("waves", StyleOptions(tier=SubscriptionTier.PREMIUM, width=1792, height=1024))

        assert result.model == "dall-e-3"
        assert result.size == "1792x1024"
        assert result.cost == pytest.approx(0.04)
        assert open_image(result.image_bytes).size == (1792, 1024)

    def test_disallowed_tier_never_calls_client(self) -> None:
        client = MagicMock()
        generator = ImageGenerator(client)

        with pytest.raises(ImageGenerationError):
            generator.generate("waves", StyleOptions(tier=SubscriptionTier.BASIC))

        client.generate_image.assert_not_called()

    def test_cancelled_before_call(self) -> None:
        client = MagicMock()
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationRequested):
            ImageGenerator(client).generate("waves", StyleOptions(tier=SubscriptionTier.PRO), token)

        client.generate_image.assert_not_called()


class TestOpenAIImageAdapter:
    def _make_adapter(self, mock_client: MagicMock) -> OpenAIImageAdapter:
        with patch("enhancer.imagegen.openai_image_adapter.openai.OpenAI", return_value=mock_client):
            return OpenAIImageAdapter(api_key="k", timeout_seconds=30)

    def test_decodes_base64_image(self) -> None:
        mock_client = MagicMock()
        mock_client.images.generate.return_value = MagicMock(
            data=[MagicMock(b64_json=base64.b64encode(b"image").decode())]
        )

        result = self._make_adapter(mock_client).generate_image(
            model="dall-e-3", prompt="p", size="1024x1024", quality="hd"
        )

        assert result == b"image"
        kwargs = mock_client.images.generate.call_args.kwargs
        assert kwargs["response_format"] == "b64_json"
        assert kwargs["quality"] == "hd"

    def test_gpt_image_omits_response_format(self) -> None:
        mock_client = MagicMock()
        mock_client.images.generate.return_value = MagicMock(
            data=[MagicMock(b64_json=base64.b64encode(b"image").decode())]
        )

        self._make_adapter(mock_client).generate_image(
            model="gpt-image-1", prompt="p", size="1024x1024", quality="standard"
        )

        assert "response_format" not in mock_client.images.generate.call_args.kwargs

    def test_empty_data_raises(self) -> None:
        mock_client = MagicMock()
        mock_client.images.generate.return_value = MagicMock(data=[])

        with pytest.raises(ImageGenerationError, match="no images"):
            self._make_adapter(mock_client).generate_image(
                model="dall-e-2", prompt="p", size="512x512", quality="standard"
            )

    def test_api_error_raises(self) -> None:
        mock_client = MagicMock()
        mock_client.images.generate.side_effect = openai.APIError(
            message="bad", request=MagicMock(), body=None
        )

        with pytest.raises(ImageGenerationError, match="API error"):
            self._make_adapter(mock_client).generate_image(
                model="dall-e-2", prompt="p", size="512x512", quality="standard"
            )


class TestImageGeneratorFactory:
    def test_creates_example_generator(self) -> None:
        generator = ImageGeneratorFactory.create(MagicMock(image_provider="example"))
        assert isinstance(generator._client, ExampleImageAdapter)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown image provider 'dalle'"):
            ImageGeneratorFactory.create(MagicMock(image_provider="dalle"))
