"""Tests for the optimization pipeline."""

import asyncio
import threading

import pytest

from dsxpert.services.languages import LanguageSupport, register_language
from dsxpert.services.llm_service import LLMServiceError
from dsxpert.services.optimizer import (
    EXPLANATION_MAX_LENGTH,
    FALLBACK_EXPLANATION,
    CodeOptimizer,
    OptimizationError,
    simplify_explanation,
)

RUBY_CODE = "def has?(items, x)\n  items.include?(x)\nend\n"
RUBY_OPTIMIZED = "require 'set'\ndef has?(items, x)\n  items.to_set.include?(x)\nend"


class TestSimplifyExplanation:
    """Tests for simplify_explanation."""

    def test_replaces_jargon(self) -> None:
        text = "Lookups now have a time complexity of O(1). However, memory grows."
        assert simplify_explanation(text) == "Lookups now have a faster. But, memory grows."

    def test_caps_length(self) -> None:
        text = "x" * (EXPLANATION_MAX_LENGTH + 50)
        result = simplify_explanation(text)
        assert result.endswith("...")
        assert len(result) == EXPLANATION_MAX_LENGTH + 3


class TestCodeOptimizer:
    """Tests for CodeOptimizer.optimize."""

    @pytest.mark.asyncio
    async def test_full_pipeline(self, fake_llm) -> None:
        fake_llm.queue(
            "ruby",  # detection
            '{"issues": []}',  # syntax check
            f"```ruby\n{RUBY_OPTIMIZED}\n```",  # optimization
            "Replaced the array scan with a Set. Therefore lookups are faster.",  # explanation
        )
        result = await CodeOptimizer(fake_llm).optimize(RUBY_CODE)

        assert result.language == "ruby"
        assert result.original is RUBY_CODE
        assert result.optimized == RUBY_OPTIMIZED + "\n"
        assert result.explanation == "Replaced the array scan with a Set. So lookups are faster."
        assert len(fake_llm.prompts) == 4

    @pytest.mark.asyncio
    async def test_given_language_skips_detection(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', RUBY_OPTIMIZED, "Used a Set.")
        result = await CodeOptimizer(fake_llm).optimize(RUBY_CODE, language="ruby")
        assert result.language == "ruby"
        assert len(fake_llm.prompts) == 3

    @pytest.mark.asyncio
    async def test_syntax_errors_stop_the_attempt(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}')
        with pytest.raises(OptimizationError, match="Line 1"):
            await CodeOptimizer(fake_llm).optimize("def broken(:\n", language="python")
        assert len(fake_llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_empty_selection(self, fake_llm) -> None:
        with pytest.raises(OptimizationError):
            await CodeOptimizer(fake_llm).optimize("   \n")
        assert fake_llm.prompts == []

    @pytest.mark.asyncio
    async def test_model_failure_is_reported(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', LLMServiceError("Gemini API error (500)"))
        with pytest.raises(OptimizationError, match="Failed to optimize code"):
            await CodeOptimizer(fake_llm).optimize(RUBY_CODE, language="ruby")

    @pytest.mark.asyncio
    async def test_empty_model_answer_is_reported(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', "```\n```")
        with pytest.raises(OptimizationError, match="no code"):
            await CodeOptimizer(fake_llm).optimize(RUBY_CODE, language="ruby")

    @pytest.mark.asyncio
    async def test_explanation_falls_back(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', RUBY_OPTIMIZED, LLMServiceError("overloaded", status=503))
        result = await CodeOptimizer(fake_llm).optimize(RUBY_CODE, language="ruby")
        assert result.explanation == FALLBACK_EXPLANATION

    @pytest.mark.asyncio
    async def test_unchanged_code_needs_no_explanation(self, fake_llm) -> None:
        fake_llm.queue('{"issues": []}', RUBY_CODE)
        result = await CodeOptimizer(fake_llm).optimize(RUBY_CODE, language="ruby")
        assert result.optimized == RUBY_CODE
        assert len(fake_llm.prompts) == 2

    @pytest.mark.asyncio
    async def test_language_refinement_applies(self, fake_llm, monkeypatch) -> None:
        monkeypatch.setattr("dsxpert.services.languages.shutil.which", lambda name: None)
        code = "#include <iostream>\nint main() { std::cout << 1 << std::endl; }\n"
        fake_llm.queue('{"issues": []}', code, "Nothing much.")
        result = await CodeOptimizer(fake_llm).optimize(code, language="cpp")
        assert "std::endl" not in result.optimized
        assert "'\\n'" in result.optimized

    @pytest.mark.asyncio
    async def test_formatter_does_not_block_the_event_loop(self, fake_llm, scratch_tags) -> None:
        release = threading.Event()
        released_while_formatting = []
        scratch_tags.append("slowlang")

        @register_language("slowlang")
        class SlowLangSupport(LanguageSupport):
            name = "slowlang"

            def format(self, code: str, timeout: float = 10) -> str:
                released_while_formatting.append(release.wait(timeout=2))
                return code

        async def release_soon() -> None:
            await asyncio.sleep(0.01)
            release.set()

        fake_llm.queue('{"issues": []}', "print(1)\n", "Nothing much.")
        result, _ = await asyncio.gather(
            CodeOptimizer(fake_llm).optimize("print(0)\n", language="slowlang"),
            release_soon(),
        )
        assert released_while_formatting == [True]
        assert result.optimized == "print(1)\n"
