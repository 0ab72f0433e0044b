"""Prompt text for the test-authoring model."""

from typing import Optional

from ..schemas import GenerationMode, GenerationRequest


def system_prompt(framework: str) -> str:
    return f"""
You are a senior software engineer who specializes in writing high-quality unit tests. You NEVER change the original code's behavior or structure. You ONLY write tests for code that is NEW or MODIFIED based on context.

## Output Format
- Respond with a single, valid JSON object
- Do NOT wrap code in markdown (```) or add any explanations
- Only return keys required by the output schema
- The 'tests' field must include **runnable** {framework} test code, using correct import statements

## Critical Constraints
- DO NOT rewrite or duplicate existing tests unless specifically instructed
- DO NOT generate tests for unchanged functions
- DO NOT change import style (e.g., if current tests use ESModule imports, do not switch to require())
- Use the correct relative import path from test to source file
- Use 'describe' + 'it' from {framework} (e.g., Jest), not 'test'
- Group the tests of each function in a 'describe' block labelled with the function name
- Do not include any extra output outside the JSON structure
"""


def _block(title: str, body: Optional[str], empty: str, lang: str = "typescript") -> str:
    return f"## {title}:\n```{lang}\n{body or empty}\n```\n"


def build_test_prompt(request: GenerationRequest) -> str:
    """Prompt for incremental generation: new test file, or update of an existing one."""
    parts = [
        f"Write {request.framework} unit tests for the source file `{request.source_path}`.",
        f"The tests will be saved at `{request.test_path}`; import from the source file accordingly.",
        "",
        _block("CURRENT CODE", request.current_code, ""),
    ]

    if request.change_type == GenerationMode.UPDATE and request.existing_tests:
        parts.append(
            _block("PREVIOUS CODE", request.previous_code, "Not available")
        )
        parts.append(_block("EXISTING TESTS", request.existing_tests, ""))
        parts.append(
            "## YOUR TASK:\n"
            "Return the updated test file. Keep every existing test whose function is "
            "unchanged exactly as it is. Add tests only for functions that are new or "
            "changed between PREVIOUS CODE and CURRENT CODE, and drop tests for "
            "functions that no longer exist.\n"
        )
    else:
        parts.append(
            "## YOUR TASK:\n"
            "Create a complete test file covering normal cases, edge cases and error "
            "cases for every exported function.\n"
        )

    return "\n".join(parts)


def build_complete_test_file_prompt(request: GenerationRequest) -> str:
    """Prompt for single-pass generation of the complete, correct test file."""
    framework = request.framework
    current = _block("CURRENT CODE (what exists now)", request.current_code, "")
    previous = _block(
        "PREVIOUS CODE (what existed before)", request.previous_code, "Not available"
    )
    existing = _block(
        "EXISTING TESTS (current test file)", request.existing_tests, "No existing tests"
    )
    diff = _block("CHANGES (Git diff)", request.diff_patch, "No diff available", "diff")
    return f"""
You are a test file manager. Your job is to analyze the current state and return the complete, correct test file.

## CONTEXT:
- **Source file**: {request.source_path}
- **Test file**: {request.test_path}
- **Framework**: {framework}

{current}
{previous}
{existing}
{diff}
## YOUR TASK:
Return the complete, correct test file that:

1. **Only tests functions that exist in CURRENT CODE**
2. **Removes tests for functions that were removed** (not in current code)
3. **Adds tests for functions that were added** (new in current code)
4. **Preserves tests for unchanged functions** (exist in both current and previous code)
5. **Updates imports to match current functions only**
6. **Uses correct relative import path from test to source file**
7. **Follows {framework} best practices**

## IMPORTANT:
- Return the COMPLETE test file, not just new tests
- Include proper imports for all current functions
- Remove any tests for functions that no longer exist
- Use 'describe' and 'it' syntax for {framework}
- Make sure all tests are runnable and valid

Generate the complete {framework} test file:
"""
