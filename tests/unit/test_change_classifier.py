"""Unit tests for ChangeClassifier."""

from unittest.mock import patch

from iterate.schemas import ChangeType
from iterate.services.change_classifier import (
    ChangeClassifier,
    find_functions,
    normalize_code,
)


def make_patch(*lines: str) -> str:
    header = ["--- a/src/math.ts", "+++ b/src/math.ts", "@@ -1,5 +1,5 @@"]
    return "\n".join(header + list(lines))


class TestFindFunctions:
    def test_declaration_styles(self):
        code = """
export function add(a, b) { return a + b; }
export default async function load() {}
function* ids() {}
const sub = (a, b) => a - b;
let twice = async x => x * 2;
var legacy = function () {};
const handlers = {
  onClick: () => {},
  onLoad: async function () {},
};
"""
        assert find_functions(code) == [
            "add",
            "load",
            "ids",
            "sub",
            "twice",
            "legacy",
            "onClick",
            "onLoad",
        ]

    def test_ignores_lookalikes(self):
        code = "const functional = 1;\nconst total = compute(a);\nmyfunction(x);"
        assert find_functions(code) == []

    def test_normalize_code(self):
        code = "/* header */\nconst a = 1; // one\n\n   const b = 2;"
        assert normalize_code(code) == "const a = 1; const b = 2;"


class TestChangeClassifierPatch:
    def setup_method(self):
        self.classifier = ChangeClassifier()

    def test_comment_only(self):
        analysis = self.classifier.classify(
            make_patch("-// old note", "+// new note", "+/* block */", "+ * more"),
            None,
            None,
        )
        assert analysis.change_type == ChangeType.COMMENT_ONLY
        assert analysis.has_code_changes is False

    def test_whitespace_only(self):
        analysis = self.classifier.classify(make_patch("+", "-   "), None, None)
        assert analysis.change_type == ChangeType.WHITESPACE_ONLY
        assert analysis.has_code_changes is False

    def test_no_added_or_removed_lines(self):
        analysis = self.classifier.classify(make_patch(" unchanged context"), None, None)
        assert analysis.change_type == ChangeType.NO_CHANGE

    def test_function_removal(self):
        analysis = self.classifier.classify(
            make_patch("-export function subtract(a, b) {", "-  return a - b;", "-}"),
            None,
            None,
        )
        assert analysis.change_type == ChangeType.FUNCTION_REMOVAL
        assert analysis.has_function_removals is True
        assert analysis.removed_functions == ["subtract"]
        assert analysis.added_functions == []

    def test_function_addition(self):
        analysis = self.classifier.classify(
            make_patch("+const multiply = (a, b) => a * b;"), None, None
        )
        assert analysis.change_type == ChangeType.FUNCTION_ADDITION
        assert analysis.added_functions == ["multiply"]

    def test_mixed(self):
        analysis = self.classifier.classify(
            make_patch("-function oldName() {}", "+function newName() {}"), None, None
        )
        assert analysis.change_type == ChangeType.MIXED
        assert analysis.added_functions == ["newName"]
        assert analysis.removed_functions == ["oldName"]

    def test_same_name_on_both_sides_is_modification(self):
        analysis = self.classifier.classify(
            make_patch("-function add(a, b) {", "+function add(a, b, c) {"), None, None
        )
        assert analysis.change_type == ChangeType.FUNCTION_MODIFICATION
        assert analysis.has_function_removals is False
        assert analysis.modified_functions == ["add"]

    def test_body_change_is_modification(self):
        analysis = self.classifier.classify(
            make_patch("-  return a + b;", "+  return b + a;"), None, None
        )
        assert analysis.change_type == ChangeType.FUNCTION_MODIFICATION
        assert analysis.has_code_changes is True

    def test_code_plus_comment_is_code_change(self):
        analysis = self.classifier.classify(
            make_patch("+// explain", "+const limit = 10;"), None, None
        )
        assert analysis.has_code_changes is True
        assert analysis.change_type == ChangeType.FUNCTION_MODIFICATION

    def test_file_headers_ignored(self):
        analysis = self.classifier.classify(make_patch("+// only a comment"), None, None)
        assert analysis.change_type == ChangeType.COMMENT_ONLY


class TestChangeClassifierContents:
    def setup_method(self):
        self.classifier = ChangeClassifier()

    def test_new_file(self):
        analysis = self.classifier.classify(None, "export function a() {}", None)
        assert analysis.change_type == ChangeType.NEW_FILE
        assert analysis.added_functions == ["a"]
        assert analysis.has_code_changes is True

    def test_identical(self):
        code = "function a() {}"
        analysis = self.classifier.classify(None, code, code)
        assert analysis.change_type == ChangeType.NO_CHANGE

    def test_comment_difference_only(self):
        analysis = self.classifier.classify(
            None, "// v2\nfunction a() {}", "/* v1 */\nfunction a() {}"
        )
        assert analysis.change_type == ChangeType.COMMENT_ONLY

    def test_function_set_difference(self):
        analysis = self.classifier.classify(
            None,
            "function a() {}\nfunction c() {}",
            "function a() {}\nfunction b() {}",
        )
        assert analysis.change_type == ChangeType.MIXED
        assert analysis.added_functions == ["c"]
        assert analysis.removed_functions == ["b"]

    def test_internal_fault_yields_unknown(self):
        with patch.object(
            ChangeClassifier, "classify_contents", side_effect=RuntimeError("boom")
        ):
            analysis = self.classifier.classify(None, "x", "y")
        assert analysis.change_type == ChangeType.UNKNOWN
        assert analysis.has_code_changes is True
