"""
Tests for prompt_composer.py - mode builders and revision strengtheners.
"""

import pytest

from content_codec import KIND_HEADLINES, KIND_PLAIN, KIND_STRUCTURED
from models import (
    GenerationMode,
    HeadlineList,
    PlainText,
    PromptStrength,
    RevisionContext,
    Section,
    StructureElement,
    Structured,
)
from prompt_composer import (
    HUMANIZE_LIMITS,
    build_alternative_prompts,
    build_copy_prompts,
    build_emergency_prompts,
    build_evaluation_prompts,
    build_headline_prompts,
    build_humanize_prompts,
    build_restyle_prompts,
    build_revision_prompts,
    build_suggestion_prompts,
    keyword_directive,
    revision_strengthener,
    strengthener_for,
    structure_directive,
    tone_level_descriptor,
)


def _full_text(prompts):
    return prompts.system_prompt + "\n" + prompts.user_prompt


class TestToneLevelDescriptor:
    @pytest.mark.parametrize(
        "level,fragment",
        [
            (0, "very formal"),
            (24, "very formal"),
            (25, "moderately formal"),
            (49, "moderately formal"),
            (50, "conversational"),
            (74, "conversational"),
            (75, "casual"),
            (100, "casual"),
        ],
    )
    def test_bands(self, level, fragment):
        assert fragment in tone_level_descriptor(level)

    def test_none(self):
        assert tone_level_descriptor(None) is None


class TestSharedDirectives:
    def test_keyword_directive_blank(self):
        assert keyword_directive("   ") is None

    def test_keyword_directive_lists_keywords(self):
        assert "meal kit, healthy dinner" in keyword_directive("meal kit, healthy dinner")

    def test_structure_directive_numbers_sections_with_targets(self):
        directive = structure_directive([
            StructureElement(label="Hero Section", word_count=80),
            StructureElement(label="Benefits"),
        ])
        assert "1. Hero Section (target: 80 words)" in directive
        assert "2. Benefits" in directive

    def test_structure_directive_empty(self):
        assert structure_directive([]) is None


class TestBuildCopyPrompts:
    """Tests for build_copy_prompts()."""

    def test_create_mentions_target_and_description(self, make_request):
        request = make_request()
        prompts = build_copy_prompts(request, 150, KIND_PLAIN)

        assert "MUST meet or exceed 150 words" in prompts.system_prompt
        assert "at least 150 words" in prompts.user_prompt
        assert "A meal-kit service for busy parents" in prompts.user_prompt
        assert "plain text" in prompts.user_prompt

    def test_improve_quotes_original_copy(self, make_request):
        request = make_request(mode="improve", original_copy="Our food is good.")
        prompts = build_copy_prompts(request, 150, KIND_PLAIN)

        assert "Improve this existing marketing copy" in prompts.user_prompt
        assert "Our food is good." in prompts.user_prompt

    def test_structured_format_lists_sections(self, make_request):
        request = make_request(output_structure=[
            {"label": "Hero Section", "word_count": 60},
            {"label": "FAQ", "word_count": 90},
        ])
        prompts = build_copy_prompts(request, 150, KIND_STRUCTURED)

        assert '"headline"' in prompts.user_prompt
        assert "1. Hero Section (target: 60 words)" in prompts.user_prompt
        assert "2. FAQ (target: 90 words)" in prompts.user_prompt

    def test_section_guidance(self, make_request):
        prompts = build_copy_prompts(make_request(section="Benefits"), 150, KIND_PLAIN)
        assert 'This copy is for the "Benefits" section' in prompts.system_prompt

    def test_strict_adds_critical_block(self, make_request):
        prompts = build_copy_prompts(make_request(strict_adherence=True), 200, KIND_PLAIN)
        assert "CRITICAL WORD COUNT REQUIREMENT: 200 words minimum" in prompts.system_prompt

    def test_forced_keywords_only_when_flagged(self, make_request):
        plain = build_copy_prompts(make_request(keywords="meal kit"), 150, KIND_PLAIN)
        forced = build_copy_prompts(make_request(keywords="meal kit", force_keyword_integration=True), 150, KIND_PLAIN)

        assert "Naturally integrate ALL of these keywords" not in plain.system_prompt
        assert "Naturally integrate ALL of these keywords" in forced.system_prompt

    def test_market_context_blocks(self, make_request):
        request = make_request(
            competitor_urls=["https://example.com"],
            target_audience_pain_points="No time to shop",
        )
        prompts = build_copy_prompts(request, 150, KIND_PLAIN)

        assert "https://example.com" in prompts.user_prompt
        assert "No time to shop" in prompts.user_prompt

    def test_known_persona_fingerprint(self, make_request):
        prompts = build_copy_prompts(make_request(persona="seth godin"), 150, KIND_PLAIN)
        assert "Seth Godin's voice is characterized by" in prompts.system_prompt

    def test_unknown_persona_generic_mimic(self, make_request):
        prompts = build_copy_prompts(make_request(persona="Ada Copywright"), 150, KIND_PLAIN)
        assert "Mimic Ada Copywright's voice" in prompts.system_prompt


class TestOtherModeBuilders:
    def test_alternative_includes_source_and_target(self, make_request):
        request = make_request(mode="alternative")
        prompts = build_alternative_prompts(request, PlainText(text="Original words here."), 120, KIND_PLAIN)

        assert "Original words here." in prompts.user_prompt
        assert "120 words" in prompts.user_prompt

    def test_alternative_reuses_source_section_titles(self, make_request):
        source = Structured(headline="H", sections=[Section(title="Why Us", body=["Text"])])
        prompts = build_alternative_prompts(make_request(mode="alternative"), source, 120, KIND_STRUCTURED)
        assert "1. Why Us" in prompts.user_prompt

    def test_humanize_carries_limits(self, make_request):
        prompts = build_humanize_prompts(make_request(mode="humanize"), PlainText(text="Copy."), 100, KIND_PLAIN)
        assert HUMANIZE_LIMITS in prompts.system_prompt
        assert "meet or exceed 100 words" in prompts.user_prompt

    def test_restyle_text_uses_persona_and_flattened_source(self, make_request):
        request = make_request(mode="restyle", persona="Gary Halbert")
        source = Structured(headline="Big Head", sections=[Section(title="Body", body=["Para one."])])
        prompts = build_restyle_prompts(request, source, 200, KIND_STRUCTURED)

        assert "Gary Halbert's voice is characterized by" in prompts.system_prompt
        assert "Big Head\n\nBody\nPara one." in prompts.user_prompt
        assert "200 words" in prompts.user_prompt

    def test_restyle_headlines_asks_for_count(self, make_request):
        request = make_request(mode="restyle", persona="Steve Jobs", num_headlines=4)
        prompts = build_restyle_prompts(request, HeadlineList(headlines=["A", "B"]), 150, KIND_HEADLINES)

        assert "Return exactly 4 headlines" in prompts.user_prompt
        assert "1. A\n2. B" in prompts.user_prompt
        assert "meet or exceed" not in prompts.user_prompt

    def test_headline_prompts(self, make_request):
        prompts = build_headline_prompts(make_request(mode="headline", num_headlines=5))

        assert "exactly 5 distinct headline options" in prompts.system_prompt
        assert '{"headlines"' in prompts.user_prompt
        assert "A meal-kit service for busy parents" in prompts.user_prompt


class TestInputHelperPrompts:
    def test_suggestions_use_field_instructions(self):
        prompts = build_suggestion_prompts("Meal kits for busy parents", "callToAction", "Spanish")

        assert "effective calls to action" in prompts.user_prompt
        assert "in Spanish" in prompts.user_prompt
        assert "Meal kits for busy parents" in prompts.user_prompt
        assert '"suggestions"' in prompts.user_prompt

    def test_unknown_suggestion_field(self):
        prompts = build_suggestion_prompts("Meal kits", "slogan")
        assert "suggestions for the slogan field" in prompts.user_prompt

    def test_evaluation_of_business_description(self, make_request):
        prompts = build_evaluation_prompts(make_request(), 150)

        assert "business description" in prompts.system_prompt
        assert "about 150 words" in prompts.system_prompt
        assert "A meal-kit service for busy parents" in prompts.user_prompt
        assert "- Key message: Not specified" in prompts.user_prompt

    def test_evaluation_of_original_copy(self, make_request):
        request = make_request(mode="improve", original_copy="Old tired copy.")
        prompts = build_evaluation_prompts(request, 300)

        assert "original copy" in prompts.system_prompt
        assert "Old tired copy." in prompts.user_prompt
        assert "improved marketing copy" in prompts.user_prompt


class TestRevisionPrompts:
    """Every revision prompt must carry the target and, with a persona, the persona."""

    def _ctx(self, request, strength, attempt, content=None, current=80, target=200):
        return RevisionContext(
            request=request,
            content=content or PlainText(text="short copy"),
            current_word_count=current,
            target_word_count=target,
            attempt_number=attempt,
            strength=strength,
        )

    @pytest.mark.parametrize(
        "strength,attempt",
        [
            (PromptStrength.NORMAL, 1),
            (PromptStrength.AGGRESSIVE, 2),
            (PromptStrength.EMERGENCY, 3),
        ],
    )
    @pytest.mark.parametrize(
        "mode",
        [GenerationMode.CREATE, GenerationMode.HUMANIZE, GenerationMode.RESTYLE, GenerationMode.ALTERNATIVE],
    )
    def test_target_and_persona_in_every_strength(self, make_request, mode, strength, attempt):
        """Given: A persona request, When: Any strengthener at any strength, Then: Target and persona present"""
        request = make_request(mode=mode.value, persona="Marie Forleo")
        prompts = strengthener_for(mode)(self._ctx(request, strength, attempt))
        text = _full_text(prompts)

        assert "200" in text
        assert "Marie Forleo" in text

    def test_dual_objective_with_persona(self, make_request):
        request = make_request(persona="Simon Sinek")
        prompts = build_revision_prompts(self._ctx(request, PromptStrength.NORMAL, 1))
        assert "DUAL OBJECTIVE" in prompts.system_prompt
        assert "DUAL OBJECTIVE" in prompts.user_prompt

    def test_no_dual_objective_without_persona(self, make_request):
        prompts = build_revision_prompts(self._ctx(make_request(), PromptStrength.NORMAL, 1))
        assert "DUAL OBJECTIVE" not in _full_text(prompts)

    def test_delta_line(self, make_request):
        prompts = build_revision_prompts(self._ctx(make_request(), PromptStrength.NORMAL, 1, current=150, target=200))
        assert "ADD at least 50 words" in prompts.user_prompt

    def test_aggressive_forced_flags(self, make_request):
        request = make_request(keywords="meal kit")
        ctx = RevisionContext(
            request=request,
            content=PlainText(text="short"),
            current_word_count=1,
            target_word_count=200,
            attempt_number=2,
            strength=PromptStrength.AGGRESSIVE,
            force_elaborations_examples=True,
            force_keyword_integration=True,
        )
        prompts = build_revision_prompts(ctx)

        assert "STILL too short" in prompts.user_prompt
        assert "Naturally integrate ALL of these keywords" in prompts.user_prompt
        assert "detailed explanations, specific examples" in prompts.user_prompt

    def test_emergency_single_objective(self, make_request):
        prompts = build_emergency_prompts(self._ctx(make_request(), PromptStrength.EMERGENCY, 3))
        assert "ONLY objective" in prompts.system_prompt
        assert "EXACTLY 200 words" in prompts.system_prompt

    def test_structured_content_keeps_json_format(self, make_request):
        content = Structured(headline="H", sections=[Section(title="Perks", body=["Fast"], is_list=True)])
        prompts = revision_strengthener(self._ctx(make_request(), PromptStrength.NORMAL, 1, content=content))

        assert '"listItems"' in prompts.user_prompt
        assert "1. Perks" in prompts.user_prompt

    def test_humanize_strengthener_repeats_limits(self, make_request):
        ctx = self._ctx(make_request(mode="humanize"), PromptStrength.NORMAL, 1)
        prompts = strengthener_for(GenerationMode.HUMANIZE)(ctx)
        assert HUMANIZE_LIMITS in prompts.user_prompt

    def test_emergency_keeps_dual_objective_with_persona(self, make_request):
        """Given: Persona request at emergency strength, Then: Voice stays an explicit objective"""
        request = make_request(persona="Seth Godin")
        prompts = build_emergency_prompts(self._ctx(request, PromptStrength.EMERGENCY, 3))

        assert "DUAL OBJECTIVE" in prompts.user_prompt
        assert "Seth Godin's voice" in prompts.user_prompt

    @pytest.mark.parametrize("builder", [build_revision_prompts, build_emergency_prompts])
    def test_expected_kind_overrides_plain_content(self, make_request, builder):
        """Given: Plain content but a structured request, Then: JSON format and section list kept"""
        request = make_request(output_structure=[{"label": "Hero Section"}, {"label": "Benefits"}])
        ctx = RevisionContext(
            request=request,
            content=PlainText(text="draft that failed to parse"),
            current_word_count=5,
            target_word_count=200,
            attempt_number=3 if builder is build_emergency_prompts else 1,
            strength=PromptStrength.EMERGENCY if builder is build_emergency_prompts else PromptStrength.NORMAL,
            expected_kind=KIND_STRUCTURED,
        )
        prompts = builder(ctx)

        assert '"sections"' in prompts.user_prompt
        assert "2. Benefits" in prompts.user_prompt
