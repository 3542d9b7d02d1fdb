from dataclasses import dataclass

from pydantic import BaseModel

MEDIA_MARKER = '{{media}}'


@dataclass(frozen=True)
class Prompt:
    name: str
    template: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    media_field: str = 'photo_data_uri'

    def text_segments(self) -> tuple[str, str]:
        """Instruction text before and after the inlined image."""
        before, marker, after = self.template.partition(MEDIA_MARKER)
        if not marker:
            raise ValueError(f'Prompt {self.name!r} has no {MEDIA_MARKER} marker.')
        return before.strip(), after.strip()


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = 'destructive'
