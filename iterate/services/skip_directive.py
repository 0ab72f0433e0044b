from ..schemas import SkipDecision

DEFAULT_SKIP_DIRECTIVE = "@iterate skip"


class SkipDirectiveParser:
    """Looks for the operator directive that suppresses test generation.

    Cleanup of tests for removed functions is never disabled by the directive.
    """

    def __init__(self, directive: str = DEFAULT_SKIP_DIRECTIVE):
        self.directive = directive

    def parse(self, trigger_text: str) -> SkipDecision:
        if self.directive and self.directive in (trigger_text or ""):
            return SkipDecision(
                should_skip=True,
                cleanup_removed_functions=True,
                reason=(
                    "Skipping test generation but will cleanup removed functions "
                    f"due to {self.directive}"
                ),
            )

        return SkipDecision(
            should_skip=False,
            cleanup_removed_functions=True,
            reason="No skip keyword detected - proceeding with normal test operations",
        )
