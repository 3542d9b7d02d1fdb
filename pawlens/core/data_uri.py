import base64
import binascii
import re

from pydantic import BaseModel, ConfigDict, field_validator

from pawlens.core.errors import MalformedInput

DATA_URI_PATTERN = re.compile(r'^data:([^;]+);base64,(.*)$', re.DOTALL)


def split_data_uri(data_uri: str) -> tuple[str, str]:
    """Return ``(mime_type, base64_payload)`` without decoding the payload."""
    match = DATA_URI_PATTERN.match(data_uri or '')
    if match is None:
        raise MalformedInput('Invalid data URI format. Expected data:<mimetype>;base64,<encoded_data>.')
    return match.group(1), match.group(2)


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    mime_type, payload = split_data_uri(data_uri)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInput('Data URI payload is not valid base64.') from exc
    return mime_type, data


def encode_data_uri(data: bytes, mime_type: str) -> str:
    if not data:
        raise MalformedInput('Cannot encode an empty payload as a data URI.')
    encoded = base64.b64encode(data).decode('ascii')
    return f'data:{mime_type};base64,{encoded}'


class ImageInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    data_uri: str

    @field_validator('data_uri')
    @classmethod
    def _check_data_uri(cls, value: str) -> str:
        _, data = decode_data_uri(value)
        if not data:
            raise MalformedInput('Data URI payload is empty.')
        return value

    @property
    def mime_type(self) -> str:
        return split_data_uri(self.data_uri)[0]

    @property
    def payload(self) -> str:
        return split_data_uri(self.data_uri)[1]
