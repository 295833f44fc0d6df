import base64
from types import SimpleNamespace

import httpx
import pytest

from image_gateway import image_provider
from image_gateway.errors import ConfigurationError, ProviderRejectionError, TransportError
from image_gateway.image_provider import GeminiImageProvider, InlineImage, extract_inline_image

MODEL = "gemini-2.5-flash-image"


def _image_response(data=b"fake-png-bytes", mime_type="image/png"):
    return SimpleNamespace(
        candidates=[
            SimpleNamespace(
                content=SimpleNamespace(
                    parts=[
                        SimpleNamespace(text="Here is your image", inline_data=None),
                        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)),
                    ]
                )
            )
        ]
    )


def _text_only_response():
    return SimpleNamespace(
        candidates=[
            SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text="I can't draw that", inline_data=None)]))
        ]
    )


class _FakeModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def fake_genai(monkeypatch):
    """Replaces genai.Client; request types stay the real SDK types."""
    state = SimpleNamespace(models=None, api_keys=[])

    def install(responses):
        state.models = _FakeModels(responses)

        class _FakeClient:
            def __init__(self, *, api_key):
                state.api_keys.append(api_key)
                self.models = state.models

        monkeypatch.setattr(image_provider.genai, "Client", _FakeClient)
        return state

    return install


def test_generate_images_requires_api_key(fake_genai):
    state = fake_genai([_image_response()])
    provider = GeminiImageProvider(api_key="", model=MODEL)

    with pytest.raises(ConfigurationError, match="Gemini API key not configured"):
        provider.generate_images("a cat", sample_count=1)

    assert state.api_keys == []


def test_generate_images_one_call_per_sample(fake_genai):
    state = fake_genai([_image_response(b"first"), _image_response(b"second")])
    provider = GeminiImageProvider(api_key="test-api-key", model=MODEL)

    results = provider.generate_images("a cat", sample_count=2)

    assert results == [
        InlineImage(base64_data=base64.b64encode(b"first").decode("utf-8"), mime_type="image/png"),
        InlineImage(base64_data=base64.b64encode(b"second").decode("utf-8"), mime_type="image/png"),
    ]
    assert state.api_keys == ["test-api-key"]
    assert len(state.models.calls) == 2
    for call in state.models.calls:
        assert call["model"] == MODEL
        parts = call["contents"][0].parts
        assert call["contents"][0].role == "user"
        assert len(parts) == 1
        assert parts[0].text == "a cat"
        assert call["config"].response_modalities == ["TEXT", "IMAGE"]
        assert call["config"].image_config is None


def test_generate_images_puts_input_image_before_prompt(fake_genai):
    state = fake_genai([_image_response()])
    provider = GeminiImageProvider(api_key="test-api-key", model=MODEL)
    input_image = InlineImage(base64_data=base64.b64encode(b"source-jpeg").decode("utf-8"), mime_type="image/jpeg")

    provider.generate_images("make it snow", sample_count=1, input_image=input_image, aspect_ratio="16:9")

    call = state.models.calls[0]
    parts = call["contents"][0].parts
    assert parts[0].inline_data.data == b"source-jpeg"
    assert parts[0].inline_data.mime_type == "image/jpeg"
    assert parts[1].text == "make it snow"
    assert call["config"].image_config.aspect_ratio == "16:9"


def test_generate_images_skips_empty_responses(fake_genai):
    fake_genai([_text_only_response(), _image_response(b"only", "image/jpeg"), SimpleNamespace(candidates=[])])
    provider = GeminiImageProvider(api_key="test-api-key", model=MODEL)

    results = provider.generate_images("a cat", sample_count=3)

    assert results == [InlineImage(base64_data=base64.b64encode(b"only").decode("utf-8"), mime_type="image/jpeg")]


def test_generate_images_rejects_when_nothing_generated(fake_genai):
    fake_genai([_text_only_response(), _text_only_response()])
    provider = GeminiImageProvider(api_key="test-api-key", model=MODEL)

    with pytest.raises(ProviderRejectionError, match="No images generated"):
        provider.generate_images("a cat", sample_count=2)


def test_generate_images_wraps_transport_errors(fake_genai):
    fake_genai([httpx.ConnectError("connection refused")])
    provider = GeminiImageProvider(api_key="test-api-key", model=MODEL)

    with pytest.raises(TransportError, match="Gemini API Error: connection refused"):
        provider.generate_images("a cat", sample_count=1)


def test_extract_inline_image_defaults_mime_type():
    response = _image_response(b"raw", mime_type=None)

    assert extract_inline_image(response) == InlineImage(
        base64_data=base64.b64encode(b"raw").decode("utf-8"),
        mime_type="image/png",
    )
    assert extract_inline_image(SimpleNamespace(candidates=None)) is None


#-------------fetch-and-encode-------------#
def _provider_with_transport(handler):
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return GeminiImageProvider(api_key="test-api-key", model=MODEL, http_client=http_client)


def test_download_image_encodes_body_with_content_type():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["timeout"] = request.extensions["timeout"]
        return httpx.Response(200, content=b"webp-bytes", headers={"content-type": "image/webp"})

    image = _provider_with_transport(handler).download_image("https://example.com/in.webp")

    assert image == InlineImage(base64_data=base64.b64encode(b"webp-bytes").decode("utf-8"), mime_type="image/webp")
    assert seen["url"] == "https://example.com/in.webp"
    assert seen["timeout"]["read"] == 30.0


def test_download_image_defaults_mime_type():
    image = _provider_with_transport(lambda request: httpx.Response(200, content=b"raw")).download_image(
        "https://example.com/in"
    )

    assert image.mime_type == "image/jpeg"


def test_download_image_http_error():
    provider = _provider_with_transport(lambda request: httpx.Response(404, content=b"missing"))

    with pytest.raises(TransportError, match="Failed to download image"):
        provider.download_image("https://example.com/missing.jpg")


def test_download_image_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="Failed to download image"):
        _provider_with_transport(handler).download_image("https://example.com/in.jpg")


def test_download_image_malformed_url():
    provider = _provider_with_transport(lambda request: httpx.Response(200, content=b"never"))

    with pytest.raises(TransportError, match="Failed to download image"):
        provider.download_image("http://[::1")
