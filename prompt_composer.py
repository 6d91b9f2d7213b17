"""
Prompt composition for every generation mode and revision strength.

Each builder returns a PromptPair. Word-count directives, tone bands,
keyword/elaboration directives and section lists are shared blocks so every
mode phrases them the same way.
"""

from typing import Callable, Dict, List, Optional, Sequence

from content_codec import KIND_HEADLINES, KIND_PLAIN, KIND_STRUCTURED, flatten_payload, payload_to_prompt_text
from models import (
    ContentPayload,
    GenerationMode,
    GenerationRequest,
    HeadlineList,
    PromptPair,
    PromptStrength,
    RevisionContext,
    StructureElement,
    Structured,
)
from persona_styles import describe_persona

PromptStrengthener = Callable[[RevisionContext], PromptPair]

MODE_TEMPERATURES: Dict[GenerationMode, float] = {
    GenerationMode.CREATE: 0.7,
    GenerationMode.IMPROVE: 0.7,
    GenerationMode.ALTERNATIVE: 0.8,
    GenerationMode.HUMANIZE: 0.85,
    GenerationMode.RESTYLE: 0.7,
    GenerationMode.HEADLINE: 1.0,
}

SECTION_GUIDANCE: Dict[str, str] = {
    "Hero Section": (
        "Focus on an attention-grabbing headline and a compelling value proposition that "
        "communicates the core benefit immediately and builds an emotional connection."
    ),
    "Benefits": (
        "Articulate the key benefits for the customer, turning features into meaningful "
        "advantages. Use benefit-driven headings and supporting evidence."
    ),
    "Features": (
        "Describe the key features and the specific problems they solve. Explain not just what "
        "each feature does but why it matters to the user."
    ),
    "Services": (
        "Outline the services offered with a focus on value delivered and outcomes achieved. "
        "Highlight differentiation and expertise."
    ),
    "About": (
        "Tell an engaging story about the business, its mission and values, and connect its "
        "purpose to customer needs."
    ),
    "Testimonials": (
        "Frame testimonials to maximize social proof, highlighting specific results and "
        "emotional impact, with short introductions that add credibility."
    ),
    "FAQ": (
        "Write clear questions and informative answers that address common concerns while "
        "reinforcing key selling points and overcoming objections."
    ),
    "Full Copy": (
        "Cover problem identification, solution, benefits, feature details and a compelling "
        "call to action in one complete marketing piece."
    ),
}

HUMANIZE_LIMITS = (
    "- At most 1 emoji or symbol in the entire piece (check marks and stars count as emojis)\n"
    "- At most 2 exclamation marks in the entire piece\n"
    "- At most 1 parenthetical phrase in the entire piece"
)

STRUCTURED_FORMAT_EXAMPLE = """{
  "headline": "Main headline goes here",
  "sections": [
    {"title": "Section title", "content": "Section content paragraph(s)"},
    {"title": "Another section title", "listItems": ["First bullet point", "Second bullet point"]}
  ],
  "wordCountAccuracy": 85
}"""


# =============================================================================
# Shared blocks
# =============================================================================

def tone_level_descriptor(tone_level: Optional[int]) -> Optional[str]:
    """Map a 0-100 formality slider to a tone instruction."""
    if tone_level is None:
        return None
    if tone_level < 25:
        return "Use a very formal tone that is appropriate for academic or corporate contexts."
    if tone_level < 50:
        return "Use a moderately formal tone that is professional but approachable."
    if tone_level < 75:
        return "Use a conversational tone that balances professionalism with approachability."
    return "Use a casual, friendly tone that feels like a conversation with a trusted friend."


def _language_and_tone(request: GenerationRequest) -> str:
    lines = [f"Write in {request.language} with a {request.tone} tone."]
    descriptor = tone_level_descriptor(request.tone_level)
    if descriptor:
        lines.append(descriptor)
    if request.preferred_writing_style:
        lines.append(f"Preferred writing style: {request.preferred_writing_style}")
    constraints = [c.strip() for c in request.language_style_constraints if c.strip()]
    if constraints:
        lines.append("Language style constraints to follow:")
        lines.extend(f"- {constraint}" for constraint in constraints)
    return "\n".join(lines)


def word_count_directive(target: int) -> str:
    return (
        f"The copy MUST meet or exceed {target} words. Do not stop early or conclude before "
        f"reaching {target} words; if unsure, add depth, examples and elaboration rather than filler."
    )


def _strict_word_count_block(target: int) -> str:
    return f"""CRITICAL WORD COUNT REQUIREMENT: {target} words minimum.
- MANDATORY: the final copy must contain at least {target} words
- If your draft is shorter, expand it with examples, case studies and in-depth explanation
- VERIFY the word count before delivering the text"""


def keyword_directive(keywords: str) -> Optional[str]:
    if not keywords or not keywords.strip():
        return None
    return (
        f"IMPORTANT: Naturally integrate ALL of these keywords throughout the copy: {keywords.strip()}. "
        "Place them where they add meaning and search value, never where they disrupt readability."
    )


def elaboration_directive() -> str:
    return (
        "IMPORTANT: Include detailed explanations, specific examples and, where appropriate, brief "
        "case studies or scenarios. Substantiate claims with evidence or reasoning so the copy feels "
        "complete and authoritative."
    )


def structure_directive(structure: Sequence[StructureElement]) -> Optional[str]:
    """Ordered section list with optional per-section targets."""
    if not structure:
        return None
    lines = ["Include these sections in this exact order:"]
    for index, element in enumerate(structure, start=1):
        target = f" (target: {element.word_count} words)" if element.word_count else ""
        lines.append(f"{index}. {element.label}{target}")
    if any(element.word_count for element in structure):
        lines.append("Each section must reach its target word count; expand any underdeveloped section.")
    return "\n".join(lines)


def _structure_from_payload(payload: ContentPayload) -> List[StructureElement]:
    if isinstance(payload, Structured):
        return [StructureElement(label=section.title) for section in payload.sections if section.title]
    return []


def _format_block(expected: str, structure: Sequence[StructureElement]) -> str:
    if expected == KIND_STRUCTURED:
        parts = [
            "Return your response as a JSON object with this exact shape:",
            STRUCTURED_FORMAT_EXAMPLE,
            "wordCountAccuracy is your 0-100 estimate of how well you matched the target word count.",
        ]
        directive = structure_directive(structure)
        if directive:
            parts.append(directive)
        return "\n".join(parts)
    if expected == KIND_HEADLINES:
        return 'Return your response as a JSON object: {"headlines": ["First headline", "Second headline"]}'
    return "Provide your response as plain text with appropriate paragraphs. Do not wrap it in code fences."


def _directives(request: GenerationRequest, force_keywords: bool, force_elaboration: bool) -> List[str]:
    directives = []
    if force_keywords:
        directive = keyword_directive(request.keywords)
        if directive:
            directives.append(directive)
    if force_elaboration:
        directives.append(elaboration_directive())
    return directives


def _key_information(request: GenerationRequest) -> str:
    fields = (
        ("Target audience", request.target_audience),
        ("Key message", request.key_message),
        ("Call to action", request.call_to_action),
        ("Desired emotion", request.desired_emotion),
        ("Brand values", request.brand_values),
        ("Keywords", request.keywords),
        ("Context", request.context),
        ("Industry/Niche", request.industry_niche),
        ("Product/Service Name", request.product_service_name),
        ("Reader's Stage in Funnel", request.reader_funnel_stage),
    )
    lines = ["Key information:"]
    lines.extend(f"- {label}: {value}" for label, value in fields if value)
    lines.append(f"- Tone: {request.tone}")
    lines.append(f"- Language: {request.language}")
    return "\n".join(lines)


def _market_context(request: GenerationRequest) -> List[str]:
    blocks = []
    urls = [url.strip() for url in request.competitor_urls if url.strip()]
    if urls:
        blocks.append("Competitor URLs to consider for differentiation:\n" + "\n".join(f"- {url}" for url in urls))
    if request.competitor_copy_text.strip():
        blocks.append(f'Competitor copy to outperform:\n"""\n{request.competitor_copy_text.strip()}\n"""')
    if request.target_audience_pain_points.strip():
        blocks.append(
            f'Target audience pain points to address:\n"""\n{request.target_audience_pain_points.strip()}\n"""'
        )
    return blocks


def _section_guidance(request: GenerationRequest) -> Optional[str]:
    if not request.section:
        return None
    guidance = SECTION_GUIDANCE.get(request.section, "")
    return f'This copy is for the "{request.section}" section. {guidance}'.strip()


def _persona_block(persona: Optional[str]) -> Optional[str]:
    if not persona:
        return None
    return f"Write in the voice of {persona}.\n{describe_persona(persona)}"


def _join(parts: Sequence[Optional[str]]) -> str:
    return "\n\n".join(part for part in parts if part)


def _quoted(text: str) -> str:
    return f'"""\n{text}\n"""'


# =============================================================================
# Mode builders
# =============================================================================

def build_copy_prompts(request: GenerationRequest, target: int, expected: str) -> PromptPair:
    """Create or improve marketing copy."""
    if request.mode == GenerationMode.IMPROVE:
        task = (
            "You will improve the existing marketing copy while keeping its core message. Enhance "
            "clarity, persuasiveness and engagement while preserving the brand identity."
        )
        source = f"Improve this existing marketing copy:\n\n{_quoted(request.original_copy)}"
    else:
        task = (
            "You will create compelling new marketing copy from the business description. Communicate "
            "the unique value proposition and connect with the audience emotionally."
        )
        source = f"Create compelling marketing copy based on this business description:\n\n{_quoted(request.business_description)}"

    system_prompt = _join([
        "You are an expert copywriter with years of experience creating persuasive, engaging and "
        "effective marketing copy.",
        task,
        _language_and_tone(request),
        word_count_directive(target),
        _section_guidance(request),
        _persona_block(request.persona),
        *_directives(request, request.force_keyword_integration, request.force_elaborations_examples),
        _strict_word_count_block(target) if request.strict_adherence else None,
    ])

    user_prompt = _join([
        source,
        _key_information(request),
        f"- Target length: The copy MUST be at least {target} words long.",
        *_market_context(request),
        _format_block(expected, request.output_structure),
        f"REMINDER: The entire copy must meet or exceed {target} words. Add depth through examples, "
        "explanations and elaboration rather than filler. Do not summarize or conclude early.",
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_alternative_prompts(
    request: GenerationRequest,
    source: ContentPayload,
    target: int,
    expected: str,
) -> PromptPair:
    """A fresh take on existing copy with a different angle."""
    structure = request.output_structure or _structure_from_payload(source)
    system_prompt = _join([
        "You are an expert copywriter who excels at alternative versions of marketing content. "
        "Keep the key message and purpose but present them with a different approach, hook or angle.",
        _language_and_tone(request),
        word_count_directive(target),
        _persona_block(request.persona),
        *_directives(request, request.force_keyword_integration, request.force_elaborations_examples),
        _strict_word_count_block(target) if request.strict_adherence else None,
    ])
    user_prompt = _join([
        f"Generate an alternative version of this marketing copy with a different approach or angle.\n\n"
        f"Original copy:\n{_quoted(payload_to_prompt_text(source))}",
        _key_information(request),
        _format_block(expected, structure),
        f"REMINDER: The alternative must meet or exceed {target} words.",
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_humanize_prompts(
    request: GenerationRequest,
    source: ContentPayload,
    target: int,
    expected: str,
) -> PromptPair:
    """Warm, conversational rewrite with hard limits on emoji and punctuation."""
    structure = request.output_structure or _structure_from_payload(source)
    system_prompt = _join([
        "You are a top-tier copywriter who rewrites text in a warm, conversational, relatable voice "
        "while preserving meaning and structure.",
        "Follow these strict limits:\n" + HUMANIZE_LIMITS,
        "Avoid hyperbole and generic metaphors; prefer concrete, everyday examples. Keep humor subtle.",
        _language_and_tone(request),
        word_count_directive(target),
        _persona_block(request.persona),
        *_directives(request, request.force_keyword_integration, request.force_elaborations_examples),
    ])
    user_prompt = _join([
        f"Rewrite the following text in a warm, conversational voice:\n\n{_quoted(payload_to_prompt_text(source))}",
        "- Preserve meaning and structure\n"
        "- Use contractions, first-person pronouns and friendly phrasing where appropriate\n"
        "- Remove jargon and add light empathy\n"
        f"- Maintain the {request.tone} tone and {request.language} language\n"
        f"- The result must meet or exceed {target} words",
        _format_block(expected, structure),
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_restyle_prompts(
    request: GenerationRequest,
    source: ContentPayload,
    target: int,
    expected: str,
) -> PromptPair:
    """Rewrite existing copy in a persona's voice."""
    persona = request.persona or ""
    system_prompt = _join([
        f"You are an expert copywriter who can mimic the voice, style and mannerisms of {persona}. "
        f"Restyle the provided copy so it sounds exactly as if {persona} wrote it, keeping all key "
        "information and meaning.",
        describe_persona(persona),
        _language_and_tone(request),
    ])

    if isinstance(source, HeadlineList):
        count = request.num_headlines
        numbered = "\n".join(f"{i}. {headline}" for i, headline in enumerate(source.headlines, start=1))
        user_prompt = _join([
            f"Restyle these {len(source.headlines)} headline options to sound exactly like {persona}. "
            f"Return exactly {count} headlines.",
            f"Original headlines:\n{numbered}",
            "Each headline must keep its core message and capture the persona's voice.",
            _format_block(KIND_HEADLINES, []),
        ])
        return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)

    structure = request.output_structure or _structure_from_payload(source)
    system_prompt = _join([
        system_prompt,
        word_count_directive(target),
        *_directives(request, request.force_keyword_integration, request.force_elaborations_examples),
        _strict_word_count_block(target) if request.strict_adherence else None,
    ])
    user_prompt = _join([
        f"Restyle the following copy to sound exactly like {persona}. Keep all key information intact "
        f"but transform the voice:\n\n{_quoted(flatten_payload(source))}",
        f"Apply {persona}'s vocabulary, cadence and stylistic approach. The final copy must meet or "
        f"exceed {target} words while still sounding like {persona}.",
        _format_block(expected, structure),
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_headline_prompts(
    request: GenerationRequest,
    source: Optional[ContentPayload] = None,
) -> PromptPair:
    """N headline options for the request or for existing copy."""
    count = request.num_headlines
    system_prompt = _join([
        "You are an expert copywriter who specializes in compelling, attention-grabbing headlines "
        "that drive engagement and conversions.",
        _language_and_tone(request),
        _persona_block(request.persona),
        f"Always return exactly {count} distinct headline options.",
    ])

    if source is not None:
        brief = f"Write {count} headline options for this copy:\n\n{_quoted(flatten_payload(source))}"
    else:
        description = request.business_description or request.original_copy
        brief = f"Write {count} headline options for this business:\n\n{_quoted(description)}"

    user_prompt = _join([
        brief,
        _key_information(request),
        "Vary the angle across options: benefit-led, curiosity, urgency and social proof.",
        _format_block(KIND_HEADLINES, []),
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


# =============================================================================
# Input helpers
# =============================================================================

SUGGESTION_FIELDS: Dict[str, str] = {
    "keyMessage": "key messages that summarize the main point or value proposition",
    "targetAudience": "target audience descriptions focusing on demographics, interests, and needs",
    "callToAction": "effective calls to action that would motivate the target audience to take the next step",
    "desiredEmotion": "emotional responses that the content should evoke in the audience",
    "brandValues": "brand values that would align with this business",
    "keywords": "SEO keywords and key phrases that would be relevant",
    "context": "contextual information that would help create more effective copy",
    "industryNiche": "specific industry niches that best match this business",
    "readerFunnelStage": (
        "appropriate marketing funnel stages for this content (awareness, consideration, decision, etc.)"
    ),
    "preferredWritingStyle": "writing styles that would be most effective for this content",
    "targetAudiencePainPoints": "specific pain points or challenges that the target audience likely faces",
    "competitorCopyText": "suggestions for competitor copy examples that would be relevant to analyze",
}


def build_suggestion_prompts(text: str, field_type: str, language: str = "English") -> PromptPair:
    """6-8 candidate values for one request field, as a JSON list."""
    wanted = SUGGESTION_FIELDS.get(field_type, f"suggestions for the {field_type} field")
    system_prompt = (
        "You are an expert marketing advisor helping to generate suggestions for a marketing copy "
        "project. Provide practical, high-quality suggestions based on the context provided."
    )
    user_prompt = _join([
        f"Based on the following information, suggest 6-8 relevant {wanted}.\n"
        f"The suggestions should be in {language}.",
        f"Context:\n{_quoted(text)}",
        'Return a JSON object: {"suggestions": ["Suggestion 1", "Suggestion 2", "Suggestion 3"]}',
        "Keep each suggestion concise and focused. No explanations or additional commentary.",
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_evaluation_prompts(request: GenerationRequest, target: int) -> PromptPair:
    """Score how well the request's input supports generating copy of ``target`` words."""
    creating = request.mode == GenerationMode.CREATE
    subject = "business description" if creating else "original copy"
    text = request.business_description if creating else request.original_copy

    system_prompt = _join([
        "You are an expert content evaluator who provides actionable feedback on text quality. "
        "Analyze the provided content for clarity, completeness and relevance, focusing on the "
        "quality of the inputs used to generate marketing copy.",
        f"For the {subject}, judge whether it gives enough context and detail to generate "
        f"high-quality marketing copy of about {target} words.",
        "Provide a numerical score from 0-100 and specific tips for improvement.",
    ])
    user_prompt = _join([
        f"Evaluate this {subject}, which will be used to generate "
        f"{'new' if creating else 'improved'} marketing copy.",
        f"Content to evaluate:\n{_quoted(text)}",
        "Additional context:\n"
        f"- Mode: {request.mode.value}\n"
        f"- Target audience: {request.target_audience or 'Not specified'}\n"
        f"- Key message: {request.key_message or 'Not specified'}\n"
        f"- Call to action: {request.call_to_action or 'Not specified'}\n"
        f"- Language: {request.language}\n"
        f"- Tone: {request.tone}\n"
        f"- Word count target: {target} words",
        "Respond with a JSON object containing score (0-100) and tips (3-5 specific improvement "
        'suggestions):\n{"score": 85, "tips": ["Add more details about X", "Clarify the target audience"]}',
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


# =============================================================================
# Revision strengtheners
# =============================================================================

def _dual_objective(persona: str, target: int) -> str:
    return (
        f"DUAL OBJECTIVE: meet the word count of {target} words AND preserve {persona}'s voice. "
        "Both are required; many attempts fail one or the other."
    )


def _revision_kind(ctx: RevisionContext) -> str:
    if ctx.expected_kind:
        return ctx.expected_kind
    return KIND_STRUCTURED if isinstance(ctx.content, Structured) else KIND_PLAIN


def _delta_line(ctx: RevisionContext) -> str:
    delta = ctx.delta
    if delta > 0:
        return f"Difference: +{delta} words. You need to ADD at least {delta} words."
    return f"Difference: {delta} words. Keep the length at or above {ctx.target_word_count} words."


def build_revision_prompts(ctx: RevisionContext) -> PromptPair:
    """Normal and aggressive revision prompts."""
    request = ctx.request
    target = ctx.target_word_count
    persona = request.persona
    expected = _revision_kind(ctx)
    structure = request.output_structure or _structure_from_payload(ctx.content)
    aggressive = ctx.strength == PromptStrength.AGGRESSIVE

    system_prompt = _join([
        "You are an expert copywriter who revises marketing copy to reach a required length without "
        "losing quality or meaning.",
        f"You are writing as {persona}.\n{describe_persona(persona)}" if persona else None,
        _language_and_tone(request),
        _strict_word_count_block(target),
        _dual_objective(persona, target) if persona else None,
    ])

    intro = f"REVISION ATTEMPT {ctx.attempt_number} ({ctx.strength.value.upper()})"
    if aggressive:
        intro += "\nThe previous revision was STILL too short. Expand much more substantially this time."

    user_prompt = _join([
        intro,
        f"Current word count: {ctx.current_word_count}\nTarget word count: {target}\n{_delta_line(ctx)}",
        "Expand the copy with substantive content: concrete examples, short case studies, supporting "
        "detail and explanation. Do not add filler and never repeat sentences or ideas already present.",
        _dual_objective(persona, target) if persona else None,
        *_directives(request, ctx.force_keyword_integration, ctx.force_elaborations_examples),
        f"Current copy:\n{_quoted(payload_to_prompt_text(ctx.content))}",
        _format_block(expected, structure),
        f"The revised copy must meet or exceed {target} words.",
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def build_emergency_prompts(ctx: RevisionContext) -> PromptPair:
    """Last-resort prompt whose only objective is reaching the target."""
    request = ctx.request
    target = ctx.target_word_count
    persona = request.persona
    expected = _revision_kind(ctx)
    structure = request.output_structure or _structure_from_payload(ctx.content)

    system_prompt = _join([
        f"Your ONLY objective is to expand the copy below to EXACTLY {target} words.",
        f"Stay in {persona}'s voice while you expand." if persona else None,
        f"Write in {request.language}.",
    ])
    user_prompt = _join([
        f"EMERGENCY EXPANSION: the copy has {ctx.current_word_count} words and needs {target}.\n"
        f"{_delta_line(ctx)}",
        _dual_objective(persona, target) if persona else None,
        "Add new paragraphs of substantive detail, examples and explanation until you reach "
        f"{target} words. Do not repeat existing sentences.",
        f"Copy to expand:\n{_quoted(payload_to_prompt_text(ctx.content))}",
        _format_block(expected, structure),
        f"Count your words. The result must be at least {target} words"
        + (f" and still sound like {persona}." if persona else "."),
    ])
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def revision_strengthener(ctx: RevisionContext) -> PromptPair:
    if ctx.strength == PromptStrength.EMERGENCY:
        return build_emergency_prompts(ctx)
    return build_revision_prompts(ctx)


def _humanize_strengthener(ctx: RevisionContext) -> PromptPair:
    prompts = revision_strengthener(ctx)
    return PromptPair(
        system_prompt=prompts.system_prompt,
        user_prompt=_join([
            prompts.user_prompt,
            "Keep the warm, conversational voice and these limits while expanding:\n" + HUMANIZE_LIMITS,
        ]),
    )


def _restyle_strengthener(ctx: RevisionContext) -> PromptPair:
    prompts = revision_strengthener(ctx)
    persona = ctx.request.persona
    if not persona or ctx.strength == PromptStrength.EMERGENCY:
        return prompts
    return PromptPair(
        system_prompt=prompts.system_prompt,
        user_prompt=_join([
            prompts.user_prompt,
            f"Every added sentence must sound like {persona}: match the rhythm and devices described above.",
        ]),
    )


def strengthener_for(mode: GenerationMode) -> PromptStrengthener:
    """Revision prompt builder for a generation mode."""
    if mode == GenerationMode.HUMANIZE:
        return _humanize_strengthener
    if mode == GenerationMode.RESTYLE:
        return _restyle_strengthener
    return revision_strengthener
