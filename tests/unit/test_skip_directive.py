"""Unit tests for SkipDirectiveParser."""

import pytest

from iterate.services.skip_directive import SkipDirectiveParser


class TestSkipDirectiveParser:
    def setup_method(self):
        self.parser = SkipDirectiveParser()

    @pytest.mark.parametrize(
        "text",
        [
            "@iterate skip",
            "fix typo @iterate skip",
            "Refactor parser\n\nNo behaviour change. @iterate skip please",
        ],
    )
    def test_directive_present(self, text):
        decision = self.parser.parse(text)
        assert decision.should_skip is True
        assert decision.cleanup_removed_functions is True
        assert "@iterate skip" in decision.reason

    @pytest.mark.parametrize("text", ["", "Add login flow", "@iterate", "@Iterate Skip"])
    def test_directive_absent(self, text):
        decision = self.parser.parse(text)
        assert decision.should_skip is False
        assert decision.cleanup_removed_functions is True

    def test_none_text(self):
        assert self.parser.parse(None).should_skip is False

    def test_custom_directive(self):
        parser = SkipDirectiveParser("[no-tests]")
        assert parser.parse("wip [no-tests]").should_skip is True
        assert parser.parse("@iterate skip").should_skip is False
