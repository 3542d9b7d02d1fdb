"""Typed request/response contracts exchanged with the hosted model.

Model output is read from camelCase keys, which is what the prompts ask the
model to emit; dumps use the snake_case field names. Validation is strict:
anything outside the declared ranges is rejected rather than clamped, and
numbers must arrive as JSON numbers, never as strings or booleans.
"""
from enum import Enum
from typing import Annotated

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pawlens.core.data_uri import decode_data_uri
from pawlens.core.errors import MalformedInput

Probability = Annotated[float, Field(strict=True, ge=0.0, le=1.0)]
Coordinate = Annotated[float, Field(strict=True, ge=0.0, le=1.0)]


class Label(str, Enum):
    CAT = 'Cat'
    DOG = 'Dog'


class Contract(BaseModel):
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
        extra='forbid',
        frozen=True,
    )


class PhotoInput(Contract):
    photo_data_uri: str


class TextInput(Contract):
    text: str

    @field_validator('text')
    @classmethod
    def _check_text(cls, value: str) -> str:
        if not value.strip():
            raise MalformedInput('Text to embed must not be empty.')
        return value


class ClassificationResult(Contract):
    predicted_label: Label
    confidence: Probability


class DetectedObject(Contract):
    label: Label
    confidence: Probability
    bounding_box: tuple[Coordinate, Coordinate, Coordinate, Coordinate]

    @model_validator(mode='after')
    def _check_box_order(self) -> 'DetectedObject':
        x_min, y_min, x_max, y_max = self.bounding_box
        if x_min > x_max or y_min > y_max:
            raise ValueError(f'bounding box is inverted: {list(self.bounding_box)}')
        return self


class DetectionResult(Contract):
    objects: list[DetectedObject]


class AttentionResult(Contract):
    overlay_image: str
    predicted_label: str
    confidence: Probability

    @field_validator('overlay_image')
    @classmethod
    def _check_overlay(cls, value: str) -> str:
        try:
            _, data = decode_data_uri(value)
        except MalformedInput as exc:
            raise ValueError(exc.message) from exc
        if not data:
            raise ValueError('overlay image payload is empty')
        return value
