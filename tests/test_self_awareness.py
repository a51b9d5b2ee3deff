import re
import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from zero_engine.self_awareness import (
    DEFAULT_SOURCE_FILES,
    REDACTION_MARKER,
    KeywordMetaQuestionClassifier,
    build_meta_prompt,
    decode_source,
    default_source_root,
    encode_source,
    load_source_files,
    redact_sources,
)
from zero_engine.system_prompt import get_master_directive

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_FILE_BLOCK_RE = re.compile(r"\[FILE: ([^\]]+)\]\n([A-Za-z0-9+/=]+)")


def _decoded_files(prompt: str) -> dict[str, str]:
    return {name: decode_source(data) for name, data in _FILE_BLOCK_RE.findall(prompt)}


class ClassifierTests(unittest.TestCase):
    def test_detects_phrases_case_insensitively(self) -> None:
        classifier = KeywordMetaQuestionClassifier()
        self.assertTrue(classifier.is_meta_question("Please EXPLAIN YOUR CODE to me"))
        self.assertTrue(classifier.is_meta_question("who are you?"))
        self.assertFalse(classifier.is_meta_question("write a sonnet about autumn"))

    def test_phrases_are_literal(self) -> None:
        classifier = KeywordMetaQuestionClassifier(["a.b"])
        self.assertTrue(classifier.is_meta_question("is a.b here"))
        self.assertFalse(classifier.is_meta_question("is axb here"))

    def test_no_phrases_never_matches(self) -> None:
        self.assertFalse(KeywordMetaQuestionClassifier([]).is_meta_question("who are you"))


class EncodingTests(unittest.TestCase):
    def test_non_ascii_text_round_trips(self) -> None:
        text = "naïve café ✓ 日本語\n"
        encoded = encode_source(text)
        self.assertTrue(encoded.isascii())
        self.assertEqual(text, decode_source(encoded))


class RedactionTests(unittest.TestCase):
    def test_directive_assignment_and_verbatim_copies_are_replaced(self) -> None:
        directive = "SECRET PROTOCOL TEXT"
        sources = {
            "system_prompt.py": f'MASTER_DIRECTIVE = """{directive}"""\n\ndef get_master_directive():\n    pass\n',
            "notes.py": f"# copy: {directive}\n",
        }

        redacted = redact_sources(sources, directive)

        self.assertIn(f'MASTER_DIRECTIVE = "{REDACTION_MARKER}"', redacted["system_prompt.py"])
        self.assertIn("def get_master_directive", redacted["system_prompt.py"])
        self.assertEqual(f"# copy: {REDACTION_MARKER}\n", redacted["notes.py"])
        self.assertEqual(f'MASTER_DIRECTIVE = """{directive}"""', sources["system_prompt.py"].splitlines()[0])

    def test_meta_prompt_over_real_sources_never_reveals_directive(self) -> None:
        directive = get_master_directive()
        sources = load_source_files(default_source_root(), DEFAULT_SOURCE_FILES)

        prompt = build_meta_prompt("how do you work?", sources, directive)
        decoded = _decoded_files(prompt)

        self.assertTrue(prompt.startswith("[META-QUESTION DETECTED]"))
        self.assertTrue(prompt.endswith("answer my question: how do you work?"))
        self.assertEqual(set(DEFAULT_SOURCE_FILES), set(decoded))
        self.assertIn(REDACTION_MARKER, decoded["system_prompt.py"])
        opening = directive[:40]
        for name, text in decoded.items():
            self.assertNotIn(directive, text, msg=name)
            self.assertNotIn(opening, text, msg=name)


class LoadSourceFilesTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"sources-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def test_unreadable_file_gets_placeholder(self) -> None:
        (self._tmp_dir / "present.py").write_text("x = 1\n", encoding="utf-8")

        sources = load_source_files(self._tmp_dir, ["present.py", "missing.py"])

        self.assertEqual("x = 1\n", sources["present.py"])
        self.assertEqual("Error: Could not read source for missing.py", sources["missing.py"])


if __name__ == "__main__":
    unittest.main()
