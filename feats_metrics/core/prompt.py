"""Grounding context for the generative text step.

Renders CVMetrics and the self-reported emotion into the structured text
block that is appended to the analysis prompt, so the model describes
measured facts instead of guessing them.
"""

import json

from feats_metrics.core.types import CVMetrics, Emotion, Narrative

SYSTEM_INSTRUCTION = """You are "The Projective Art Analyst", an assistant loosely based on the
Formal Elements Art Therapy Scale (FEATS). You analyse HOW a coloring page was
colored, not WHAT was drawn, along four vectors: boundary adherence, color
palette and energy, space utilization, and interaction with ambiguity.
Synthesise observations into a short, careful personality snapshot. This is
not a clinical assessment."""

USER_PROMPT = """Analyze the attached image based on the 4 vectors (Boundary Adherence,
Color Palette, Space Utilization, Interaction with Ambiguity).
Respond with a single JSON object with exactly these keys:
  "visual_evidence": list of the 3-4 most striking visual facts,
  "personality_snapshot": 2-3 sentences on what the facts suggest,
  "disclaimer": the standard non-clinical disclaimer.
Return JSON only."""

CONTEXT_TEMPLATE = """HARD DATA FROM COMPUTER VISION ALGORITHMS (use this to validate your observations):

1. SPACE UTILIZATION (FEATS: Space):
   - White Space Ratio: {white_space:.1f}%
   - Interpretation guide: >70% = high avoidance / low energy. <10% = horror vacui / anxiety.

2. COLOR PALETTE (FEATS: Color):
   - Dominant Hues: {hues}

3. BOUNDARY CONTROL (FEATS: Line Fit & Mental Control):
   - Rebellion Score: {rebellion:.1f}% ({method})
     (Low = conscientious/rigid. High = impulsive/rebellious. >50% suggests significant coloring over lines.)
   - Fill Consistency Score: {consistency:.0f}/100
     (Higher = smooth shading / high control. Lower = energetic / chaotic scribbling.)

4. USER SELF-REPORTED EMOTION:
   - Primary: {primary}
   - Secondary: {secondary}
   - Tertiary: {tertiary}

INSTRUCTIONS:
- Compare the CV data with the user's reported emotion.
- Use the Rebellion Score to decide whether boundaries were respected. A high score must be noted as
  "testing constraints" or "free-spirited".
- Use the White Space Ratio for energy levels."""

_METHOD_LABELS = {
    'template': 'measured against the blank template',
    'inference': 'inferred from remaining line ink',
}


def format_hues(metrics: CVMetrics) -> str:
    if not metrics.dominant_colors:
        return 'none detected'
    return ', '.join(f'{c.color.value} ({c.percentage:.0f}%)' for c in metrics.dominant_colors)


def build_context(metrics: CVMetrics, emotion: Emotion | None = None) -> str:
    return CONTEXT_TEMPLATE.format(
        white_space=metrics.white_space_ratio * 100,
        hues=format_hues(metrics),
        rebellion=metrics.rebellion_score * 100,
        method=_METHOD_LABELS.get(metrics.method, metrics.method),
        consistency=metrics.fill_consistency_score * 100,
        primary=emotion.primary if emotion else 'Unknown',
        secondary=emotion.secondary if emotion else 'Unknown',
        tertiary=(emotion.tertiary if emotion else None) or 'N/A',
    )


def build_prompt(context: str | None = None) -> str:
    if not context:
        return USER_PROMPT
    return f'{USER_PROMPT}\n\nIMPORTANT - USE THIS DATA TO GROUND YOUR ANALYSIS:\n{context}'


def _strip_fence(text: str) -> str:
    """Remove a ```json ... ``` wrapper some models add around JSON answers."""
    stripped = text.strip()
    if stripped.startswith('```'):
        stripped = stripped.split('\n', 1)[1] if '\n' in stripped else ''
        stripped = stripped.rsplit('```', 1)[0]
    return stripped.strip()


def parse_narrative(text: str) -> Narrative:
    """Parse the model's JSON answer. Raises ValueError if keys are missing or mistyped."""
    try:
        obj = json.loads(_strip_fence(text))
    except json.JSONDecodeError as e:
        raise ValueError(f'response is not JSON: {e}') from e
    if not isinstance(obj, dict):
        raise ValueError('response JSON is not an object')

    evidence = obj.get('visual_evidence', obj.get('visualEvidence'))
    snapshot = obj.get('personality_snapshot', obj.get('personalitySnapshot'))
    disclaimer = obj.get('disclaimer')
    if not isinstance(evidence, list) or not isinstance(snapshot, str) or not isinstance(disclaimer, str):
        raise ValueError('response must have visual_evidence (list), personality_snapshot and disclaimer (strings)')
    return Narrative(
        visual_evidence=[str(item) for item in evidence],
        personality_snapshot=snapshot,
        disclaimer=disclaimer,
    )
