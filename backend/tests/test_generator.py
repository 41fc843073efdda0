from types import SimpleNamespace

import pytest

from virtual_school.errors import GenerationError
from virtual_school.utils.generator import GeminiGenerator


class _Models:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append({"model": model, "contents": contents})
        if self.error:
            raise self.error
        return self.response


def _generator_with(models):
    gen = GeminiGenerator("test-key", "text-model", "image-model", timeout_seconds=5)
    gen._client = SimpleNamespace(models=models)
    return gen


def _image_response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def test_generate_text_returns_stripped_text():
    models = _Models(SimpleNamespace(text='  {"a": 1}\n'))
    gen = _generator_with(models)
    assert gen.generate_text("prompt") == '{"a": 1}'
    assert models.calls[0] == {"model": "text-model", "contents": "prompt"}


def test_generate_text_wraps_upstream_errors():
    gen = _generator_with(_Models(error=RuntimeError("503 unavailable")))
    with pytest.raises(GenerationError):
        gen.generate_text("prompt")


def test_generate_text_empty_response():
    gen = _generator_with(_Models(SimpleNamespace(text=None)))
    with pytest.raises(GenerationError):
        gen.generate_text("prompt")


def test_generate_image_returns_first_inline_payload():
    resp = _image_response(
        SimpleNamespace(text="here you go", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=b"PNGDATA", mime_type="image/png")),
    )
    models = _Models(resp)
    gen = _generator_with(models)
    assert gen.generate_image("draw a cell") == b"PNGDATA"
    assert models.calls[0]["model"] == "image-model"
    assert models.calls[0]["contents"] == ["draw a cell"]


def test_generate_image_without_inline_part_returns_none():
    gen = _generator_with(_Models(_image_response(SimpleNamespace(text="sorry", inline_data=None))))
    assert gen.generate_image("draw") is None
    assert _generator_with(_Models(SimpleNamespace(candidates=[]))).generate_image("draw") is None


def test_generate_image_sends_source_image():
    models = _Models(_image_response())
    gen = _generator_with(models)
    gen.generate_image("add labels", image_bytes=b"\x89PNG", mime_type="image/png")
    contents = models.calls[0]["contents"]
    assert contents[0] == "add labels"
    assert len(contents) == 2


def test_missing_key_raises_generation_error():
    gen = GeminiGenerator("", "text-model", "image-model")
    with pytest.raises(GenerationError):
        gen.generate_text("prompt")
