"""Tests for shared adapter types."""

import pytest

from imagestudio.adapters.base import (
    EditImageParams,
    GeneratedImage,
    ImageValidationError,
    InputImage,
    normalize_images,
)


class TestInputImage:
    """Tests for InputImage decoding."""

    def test_data_url_prefix_is_stripped(self, png_b64):
        image = InputImage(mime_type="image/png", data=f"data:image/png;base64,{png_b64}")
        assert image.base64_data == png_b64
        assert image.to_bytes().startswith(b"\x89PNG")

    def test_invalid_base64(self):
        with pytest.raises(ImageValidationError):
            InputImage(mime_type="image/png", data="not base64 at all").to_bytes()


class TestGeneratedImage:
    """Tests for GeneratedImage serialization."""

    def test_to_dict_omits_absent_fields(self):
        assert GeneratedImage(url="https://img.test/a.png").to_dict() == {
            "url": "https://img.test/a.png"
        }
        assert GeneratedImage(b64_json="YQ==").to_dict() == {"b64_json": "YQ=="}

    def test_normalize_images_drops_empty(self):
        images = normalize_images([{}, {"url": ""}, {"b64_json": "YQ=="}, "junk"])
        assert images == [GeneratedImage(b64_json="YQ==")]

    def test_normalize_images_none(self):
        assert normalize_images(None) == []


def test_edit_params_images_always_list(png_b64):
    image = InputImage(mime_type="image/png", data=png_b64)
    assert EditImageParams(image=image, prompt="x").images == [image]
    assert EditImageParams(image=[image, image], prompt="x").images == [image, image]
