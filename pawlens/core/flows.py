import logging

from pawlens.core.contracts import (
    AttentionResult,
    ClassificationResult,
    DetectedObject,
    DetectionResult,
    PhotoInput,
    TextInput,
)
from pawlens.core.data_uri import ImageInput
from pawlens.core.errors import RemoteError
from pawlens.core.model_client import ModelClient
from pawlens.core.types import Prompt
from pawlens.utils.timings import measure_ms

logger = logging.getLogger('pawlens.flows')

CLASSIFY_PROMPT = Prompt(
    name='predictImageClassPrompt',
    input_model=PhotoInput,
    output_model=ClassificationResult,
    template="""
You are an AI image classification model specializing in identifying cats and dogs.
Given an image, predict whether it is a "Cat" or a "Dog" and provide a confidence score between 0 and 1.

Analyze the following image:
{{media}}

Return ONLY a JSON object of the form {"predictedLabel": "Cat" | "Dog", "confidence": <number 0-1>}.
Do not wrap the JSON in markdown backticks and do not add any commentary.
""",
)

DETECT_PROMPT = Prompt(
    name='objectDetectionPrompt',
    input_model=PhotoInput,
    output_model=DetectionResult,
    template="""
You are an AI model that performs object detection on images. You can identify "Cat" and "Dog" objects.

Analyze the image provided and identify all instances of cats and dogs. For each object you find, provide:
1. The "label" ("Cat" or "Dog").
2. A "confidence" score for the detection (a number between 0 and 1).
3. A "boundingBox": an array of four numbers [x_min, y_min, x_max, y_max]. The coordinates must be
   normalized floats between 0 and 1, relative to the image dimensions, with x_min <= x_max and y_min <= y_max.

Here is the image:
{{media}}

Return ONLY the JSON object with the key "objects" (an empty list when there are no cats or dogs).
Do not add any commentary or markdown formatting.
""",
)

ATTENTION_PROMPT = Prompt(
    name='attentionMapPrompt',
    input_model=PhotoInput,
    output_model=AttentionResult,
    template="""
You are an AI model that classifies images of cats and dogs and generates an attention map highlighting
the areas the AI focuses on to make its decision.

Analyze the image and:
1. Predict whether the image is a "Cat" or a "Dog". Return it in the "predictedLabel" field.
2. Provide a confidence score (0-1) for your prediction in the "confidence" field.
3. Generate an attention map highlighting the regions of the image that were most influential in your
   decision, as a heatmap overlaid on the original image. Return it as a data URI
   (data:image/png;base64,...) in the "overlayImage" field.

Here is the image:
{{media}}

Return ONLY the JSON object. Do not wrap the JSON in markdown backticks.
""",
)


def _run(client: ModelClient, prompt: Prompt, image: ImageInput):
    with measure_ms() as elapsed:
        try:
            result = client.invoke(prompt, PhotoInput(photo_data_uri=image.data_uri))
        except RemoteError as exc:
            logger.warning('flow failed prompt=%s model=%s error=%s', prompt.name, client.model_id, exc.message)
            raise
    logger.info('flow ok prompt=%s model=%s mime=%s latency_ms=%s', prompt.name, client.model_id, image.mime_type, elapsed())
    return result


def classify(client: ModelClient, image: ImageInput) -> ClassificationResult:
    return _run(client, CLASSIFY_PROMPT, image)


def detect(client: ModelClient, image: ImageInput) -> list[DetectedObject]:
    result: DetectionResult = _run(client, DETECT_PROMPT, image)
    return list(result.objects)


def generate_attention_map(client: ModelClient, image: ImageInput) -> AttentionResult:
    return _run(client, ATTENTION_PROMPT, image)


def embed_image(client: ModelClient, image: ImageInput) -> list[float]:
    with measure_ms() as elapsed:
        vector = client.embed(image)
    logger.info('embedding ok kind=image model=%s dims=%s latency_ms=%s', client.embedding_model_id, len(vector), elapsed())
    return vector


def embed_text(client: ModelClient, text: str) -> list[float]:
    payload = TextInput(text=text)
    with measure_ms() as elapsed:
        vector = client.embed(payload.text)
    logger.info('embedding ok kind=text model=%s dims=%s latency_ms=%s', client.embedding_model_id, len(vector), elapsed())
    return vector
