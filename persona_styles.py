"""
Stylistic fingerprints for well-known copywriting voices.

Unknown personas get a generic mimic instruction built from the name alone.
"""

from typing import Dict, List, Optional

PERSONA_FINGERPRINTS: Dict[str, List[str]] = {
    "Steve Jobs": [
        "Simple, direct and clear language",
        "Short, impactful sentences",
        "Focus on product benefits and why it matters",
        "Contrasts such as 'X is good, but Y is revolutionary'",
        "Powerful adjectives like 'incredible', 'amazing' and 'revolutionary'",
        "A sense of making history and changing the world",
    ],
    "Seth Godin": [
        "Short, punchy paragraphs, often one or two sentences",
        "Thought-provoking questions",
        "Metaphors and unexpected comparisons",
        "Conversational yet profound observations",
        "Challenges conventional thinking",
        "Starts with a simple observation and builds to a deeper insight",
    ],
    "Marie Forleo": [
        "Warm, conversational and friendly tone",
        "Upbeat, positive and encouraging language",
        "Empowering calls to action",
        "Personal anecdotes and relatable examples",
        "Questions that pull the reader in",
        "Occasional playful humor and slang",
    ],
    "Simon Sinek": [
        "Focus on 'why' before 'what' or 'how'",
        "Inspirational and purpose-driven",
        "Rhetorical questions that make the reader reflect",
        "Repetition of key concepts for emphasis",
        "Simple language for profound ideas",
        "Stories that show principles in action",
        "Calm, measured pace with deliberate pauses",
    ],
    "Gary Halbert": [
        "Direct and conversational, talking to the reader as 'you'",
        "Bold claims backed by reasoning",
        "Authentic, sometimes rough-around-the-edges tone",
        "Storytelling that draws the reader in",
        "Deliberate capitalization and emphasis",
        "Explicit promises and benefits",
        "Colorful expressions and memorable phrases",
    ],
    "David Ogilvy": [
        "Clear, elegant and fact-driven language",
        "Sophisticated but never pretentious vocabulary",
        "Long-form copy with a logical progression of ideas",
        "Emphasis on research and credibility",
        "Well-crafted, memorable phrases",
        "Respect for the reader's intelligence",
        "Professional, with the occasional witty observation",
    ],
}

_LOOKUP = {name.lower(): name for name in PERSONA_FINGERPRINTS}


def canonical_persona_name(persona: str) -> Optional[str]:
    """Return the catalogued spelling of a known persona, or None."""
    return _LOOKUP.get(persona.strip().lower())


def describe_persona(persona: str) -> str:
    """Voice description block for a system prompt."""
    known = canonical_persona_name(persona)
    if known is None:
        return (
            f"Mimic {persona}'s voice as closely as you can: their vocabulary, sentence rhythm, "
            f"rhetorical habits and the way they address an audience."
        )

    traits = "\n".join(f"- {trait}" for trait in PERSONA_FINGERPRINTS[known])
    return f"{known}'s voice is characterized by:\n{traits}"
