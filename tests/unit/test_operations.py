"""
Tests for operation parameter validation and derived file naming.
"""
from __future__ import annotations

import os

import pytest
from pydantic import ValidationError as PydanticValidationError

from imagepipe.domain.errors import PathCollisionError, ValidationError
from imagepipe.domain.operations import (
    FilterParams,
    FormatParams,
    OperationType,
    Position,
    ResizeParams,
    WatermarkParams,
    dump_parameters,
)
from imagepipe.domain.services.path_namer import DerivedPathNamer


class TestParameterModels:
    def test_resize_defaults(self):
        params = ResizeParams(width=400)
        assert params.height is None
        assert params.fit.value == "cover"
        assert params.position is Position.CENTER
        assert params.without_enlargement is False

    def test_resize_accepts_camel_case(self):
        params = ResizeParams.model_validate({"width": 10, "withoutEnlargement": True})
        assert params.without_enlargement is True
        assert dump_parameters(params)["withoutEnlargement"] is True

    def test_resize_rejects_out_of_range_width(self):
        with pytest.raises(PydanticValidationError):
            ResizeParams(width=6000)

    def test_format_jpg_alias(self):
        assert FormatParams(format="jpg").format.value == "jpeg"

    def test_format_unknown_lists_supported(self):
        with pytest.raises(PydanticValidationError) as exc:
            FormatParams(format="bmp")
        assert "Supported formats: jpeg, png, webp, tiff, gif" in str(exc.value)

    def test_filter_accepts_type_key(self):
        params = FilterParams.model_validate({"type": "sepia"})
        assert params.filter.value == "sepia"
        assert dump_parameters(params) == {"filter": "sepia", "intensity": 1.0}

    def test_watermark_blank_text_rejected(self):
        with pytest.raises(PydanticValidationError):
            WatermarkParams(text="   ")

    def test_watermark_unknown_colour_rejected(self):
        with pytest.raises(PydanticValidationError):
            WatermarkParams(text="hi", color="not-a-colour")


class TestDispatcherValidation:
    def test_invalid_type(self, services):
        _, _, dispatcher, _ = services
        with pytest.raises(ValidationError) as exc:
            dispatcher.validate("emboss", {})
        assert "Invalid transformation type: emboss" in exc.value.detail
        assert "resize, crop, rotate, format, filter, watermark, thumbnail" in exc.value.detail

    def test_resize_needs_a_dimension_when_standalone(self, services):
        _, _, dispatcher, _ = services
        with pytest.raises(ValidationError):
            dispatcher.validate("resize", {})
        assert dispatcher.validate("resize", {}, standalone=False).width is None

    def test_options_must_be_object(self, services):
        _, _, dispatcher, _ = services
        with pytest.raises(ValidationError):
            dispatcher.validate("rotate", [90])

    def test_missing_options_use_defaults(self, services):
        _, _, dispatcher, _ = services
        params = dispatcher.validate(OperationType.ROTATE, None)
        assert params.angle == 90

    def test_crop_requires_all_fields(self, services):
        _, _, dispatcher, _ = services
        with pytest.raises(ValidationError) as exc:
            dispatcher.validate("crop", {"left": 0, "top": 0, "width": 10})
        assert "height" in exc.value.detail


class TestDerivedPathNamer:
    def test_name_layout(self, tmp_path):
        src = str(tmp_path / "photo.png")
        path = DerivedPathNamer().name(src, "rotate", {"angle": 90.0})
        base = os.path.basename(path)
        assert os.path.dirname(path) == str(tmp_path)
        assert base.startswith("photo_rotate_angle-90_")
        assert base.endswith(".png")

    def test_new_extension(self, tmp_path):
        path = DerivedPathNamer().name(str(tmp_path / "a.png"), "convert", {"format": "jpeg"}, "jpg")
        assert path.endswith(".jpg")

    def test_names_are_unique(self, tmp_path):
        namer = DerivedPathNamer()
        src = str(tmp_path / "a.png")
        names = {namer.name(src, "resize", {"width": 10}) for _ in range(50)}
        assert len(names) == 50

    def test_unsafe_characters_replaced(self, tmp_path):
        path = DerivedPathNamer().name(str(tmp_path / "a.png"), "watermark", {"text": "(c) me/you"})
        assert "/" not in os.path.basename(path)
        assert " " not in path

    def test_existing_path_raises(self, tmp_path, monkeypatch):
        import imagepipe.domain.services.path_namer as module

        monkeypatch.setattr(module.time, "time_ns", lambda: 1)
        monkeypatch.setattr(module.secrets, "token_hex", lambda n: "abcd")
        src = str(tmp_path / "a.png")
        first = DerivedPathNamer().name(src, "rotate", {})
        open(first, "wb").close()
        with pytest.raises(PathCollisionError):
            DerivedPathNamer().name(src, "rotate", {})
