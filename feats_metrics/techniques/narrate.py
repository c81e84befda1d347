"""Send the image plus measured metrics to a vision LLM for a personality snapshot.

Runs 'metrics' first. The feature vector and the self-reported emotion
(--emotion PRIMARY,SECONDARY[,TERTIARY]) are rendered into a grounding
context block so the model reads measured numbers instead of guessing
visual facts. The model must answer with JSON:

    {"visual_evidence": [...], "personality_snapshot": "...", "disclaimer": "..."}

## Provider configuration

Uses any OpenAI-compatible endpoint. Set env vars (in .env or environment):

    {PROVIDER}_API_KEY   — required (FEATS_API_KEY is the generic fallback)
    {PROVIDER}_API_URL   — required for unknown providers
    {PROVIDER}_MODEL     — optional, overrides the default model

Built-in provider defaults:

    openai    OPENAI_API_URL=https://api.openai.com/v1
              default model: gpt-4o-mini
    groq      GROQ_API_URL=https://api.groq.com/openai/v1
              default model: meta-llama/llama-4-maverick-17b-128e-instruct
    mistral   MISTRAL_API_URL=https://api.mistral.ai/v1
              default model: mistral-medium-2505
    gemini    GEMINI_API_URL=https://generativelanguage.googleapis.com/v1beta/openai/
              default model: gemini-2.5-flash

At startup, prints the resolved provider, model and URL for confirmation.

Example:
    OPENAI_API_KEY=... uv run feats-tool narrate ./tmp colored.jpg --emotion Joy,Excited
    GEMINI_API_KEY=... uv run feats-tool narrate ./tmp colored.jpg --template blank.png --provider gemini
"""

import base64
import io
import os
import sys

from PIL import Image

from feats_metrics.core.pipeline import analyze, prepare
from feats_metrics.core.prompt import SYSTEM_INSTRUCTION, build_context, build_prompt, parse_narrative
from feats_metrics.core.types import Artwork, Report, Technique

technique = Technique(
    name='narrate',
    help='Run metrics, then ask a vision LLM for evidence + personality snapshot grounded in them.',
    automatic=False,
)

_DEFAULT_URLS: dict[str, str] = {
    'openai': 'https://api.openai.com/v1',
    'groq': 'https://api.groq.com/openai/v1',
    'mistral': 'https://api.mistral.ai/v1',
    'gemini': 'https://generativelanguage.googleapis.com/v1beta/openai/',
}

_DEFAULT_MODELS: dict[str, str] = {
    'openai': 'gpt-4o-mini',
    'groq': 'meta-llama/llama-4-maverick-17b-128e-instruct',
    'mistral': 'mistral-medium-2505',
    'gemini': 'gemini-2.5-flash',
}

TEMPERATURE = 0.7


def _resolve_provider(provider: str, explicit_key: str | None) -> tuple[str, str, str]:
    """Resolve (api_key, api_url, model) from env vars for the given provider name."""
    env_prefix = provider.upper()
    api_key = explicit_key or os.environ.get(f'{env_prefix}_API_KEY') or os.environ.get('FEATS_API_KEY') or ''
    api_url = os.environ.get(f'{env_prefix}_API_URL') or _DEFAULT_URLS.get(provider, '')
    model = os.environ.get(f'{env_prefix}_MODEL') or _DEFAULT_MODELS.get(provider, '')
    return api_key, api_url, model


def _image_to_base64(image: Image.Image) -> str:
    """Convert PIL Image to base64-encoded PNG string."""
    buf = io.BytesIO()
    image.save(buf, format='PNG')
    return base64.b64encode(buf.getvalue()).decode('utf-8')


def _call_vision(client, model: str, image: Image.Image, prompt: str) -> str:
    """Send image + prompt to an OpenAI-compatible vision model. Returns response text."""
    response = client.chat.completions.create(
        model=model,
        temperature=TEMPERATURE,
        messages=[
            {'role': 'system', 'content': SYSTEM_INSTRUCTION},
            {
                'role': 'user',
                'content': [
                    {'type': 'image_url', 'image_url': {'url': f'data:image/png;base64,{_image_to_base64(image)}'}},
                    {'type': 'text', 'text': prompt},
                ],
            },
        ],
    )
    return response.choices[0].message.content or ''


@technique.run
def run(artwork: Artwork, report: Report, args) -> None:
    metrics = analyze(artwork.image, artwork.template, artwork.calibration)
    report.add('metrics', metrics.to_dict())

    provider = (getattr(args, 'provider', None) or 'openai').lower()
    api_key, api_url, model = _resolve_provider(provider, getattr(args, 'api_key', None))

    if not api_key:
        msg = f'no API key. Set {provider.upper()}_API_KEY or FEATS_API_KEY.'
        print(f'narrate: {msg}', file=sys.stderr)
        report.add('narrate', {'error': msg})
        return

    if not api_url or not model:
        msg = f'unknown provider {provider!r}. Set {provider.upper()}_API_URL and {provider.upper()}_MODEL.'
        print(f'narrate: {msg}', file=sys.stderr)
        report.add('narrate', {'error': msg})
        return

    try:
        import openai
    except ImportError:
        msg = 'pip install openai (or uv add openai)'
        print(f'narrate: {msg}', file=sys.stderr)
        report.add('narrate', {'error': msg})
        return

    print(f'narrate: provider={provider}  model={model}  url={api_url}', file=sys.stderr)

    context = build_context(metrics, getattr(args, 'emotion', None))
    image = prepare(artwork.image, artwork.calibration)
    try:
        client = openai.OpenAI(api_key=api_key, base_url=api_url)
        text = _call_vision(client, model, image, build_prompt(context))
    except openai.OpenAIError as e:
        report.add('narrate', {'error': f'{provider} request failed: {e}'})
        return

    try:
        narrative = parse_narrative(text)
    except ValueError as e:
        report.add('narrate', {'error': str(e), 'raw': text})
        return

    report.add('narrate', {**narrative.to_dict(), 'model': model, 'provider': provider})
