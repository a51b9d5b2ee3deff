import unittest

from zero_engine.parsing import (
    ParsedResponse,
    Section,
    extract_c4_score,
    parse_response,
    split_sections,
)

STANDARD_RESPONSE = (
    "[Acknowledgement]\nTask received.\n\n"
    "[C4 Score]\n0.85 - the request is clear.\n\n"
    "[Draft]\nFirst attempt.\n\nStill part of the draft."
)


def _chain_response(constraint_blocks: list[str]) -> str:
    blocks = ["[Task]\nWrite a haiku"]
    blocks.extend(constraint_blocks)
    blocks.extend(f"[Refined Answer {i}/5]\nanswer {i}" for i in range(1, 6))
    return "\n\n".join(blocks)


class SplitSectionsTests(unittest.TestCase):
    def test_plain_text_becomes_single_response_section(self) -> None:
        self.assertEqual([Section("Response", "hello world")], split_sections("hello world"))

    def test_empty_text_has_no_sections(self) -> None:
        self.assertEqual([], split_sections(""))

    def test_whitespace_only_text_is_kept_verbatim(self) -> None:
        self.assertEqual([Section("Response", "   ")], split_sections("   "))

    def test_tag_without_title_falls_back_to_verbatim_text(self) -> None:
        text = "empty [] brackets"
        self.assertEqual([Section("Response", text)], split_sections(text))

    def test_sections_in_order_with_trimmed_content(self) -> None:
        sections = split_sections(STANDARD_RESPONSE)
        self.assertEqual(["Acknowledgement", "C4 Score", "Draft"], [s.title for s in sections])
        self.assertEqual("Task received.", sections[0].content)
        self.assertEqual("First attempt.\n\nStill part of the draft.", sections[2].content)

    def test_content_only_breaks_on_blank_line_before_a_tag(self) -> None:
        text = "[Draft]\nsee [note] inline\n[not a break]\n\n[Final Output]\ndone"
        sections = split_sections(text)
        self.assertEqual(["Draft", "Final Output"], [s.title for s in sections])
        self.assertEqual("see [note] inline\n[not a break]", sections[0].content)

    def test_parser_is_idempotent(self) -> None:
        self.assertEqual(parse_response(STANDARD_RESPONSE), parse_response(STANDARD_RESPONSE))

    def test_every_non_empty_prefix_parses(self) -> None:
        for end in range(1, len(STANDARD_RESPONSE) + 1):
            sections = split_sections(STANDARD_RESPONSE[:end])
            self.assertGreaterEqual(len(sections), 1, msg=repr(STANDARD_RESPONSE[:end]))

    def test_incomplete_trailing_tag_is_not_a_section(self) -> None:
        sections = split_sections("[Draft]\nsome text\n\n[Fin")
        self.assertEqual([Section("Draft", "some text")], sections)


class ParseResponseTests(unittest.TestCase):
    def test_standard_response_is_not_chain_mode(self) -> None:
        parsed = parse_response(STANDARD_RESPONSE)
        self.assertFalse(parsed.is_chain_mode)
        self.assertIsNone(parsed.task)
        self.assertEqual([], parsed.refined_answers)

    def test_chain_response_collects_five_answers_in_order(self) -> None:
        parsed = parse_response(_chain_response(["[Constraints]\nSeventeen syllables"]))

        self.assertTrue(parsed.is_chain_mode)
        self.assertEqual(Section("Task", "Write a haiku"), parsed.task)
        self.assertEqual(Section("Constraints", "Seventeen syllables"), parsed.constraints)
        self.assertEqual(
            [f"Refined Answer {i}/5" for i in range(1, 6)],
            [s.title for s in parsed.refined_answers],
        )
        self.assertEqual("answer 5", parsed.refined_answers[-1].content)

    def test_multiple_constraint_sections_merge_in_order(self) -> None:
        parsed = parse_response(
            _chain_response(["[Constraints]\nfirst", "[STANDING CONSTRAINTS]\n- second"])
        )
        self.assertEqual("Constraints", parsed.constraints.title)
        self.assertEqual("first\n\n**STANDING CONSTRAINTS**\n- second", parsed.constraints.content)

    def test_first_task_section_wins(self) -> None:
        text = "[Task]\none\n\n[Task]\ntwo\n\n[Refined Answer 1/5]\nx"
        self.assertEqual("one", parse_response(text).task.content)

    def test_to_dict_omits_chain_fields_outside_chain_mode(self) -> None:
        data = parse_response("hello").to_dict()
        self.assertEqual({"sections": [{"title": "Response", "content": "hello"}], "is_chain_mode": False}, data)

    def test_from_dict_restores_chain_fields(self) -> None:
        parsed = parse_response(_chain_response(["[Constraints]\nshort"]))
        self.assertEqual(parsed, ParsedResponse.from_dict(parsed.to_dict()))


class C4ScoreTests(unittest.TestCase):
    def test_reads_first_decimal_from_c4_section(self) -> None:
        self.assertEqual(0.85, extract_c4_score(Section("C4 Score", "0.85 - clear, 0.10 risk")))

    def test_title_match_is_case_insensitive(self) -> None:
        self.assertEqual(0.5, extract_c4_score(Section("c4 score (estimate)", "about 0.50")))

    def test_other_sections_and_missing_numbers_score_zero(self) -> None:
        self.assertEqual(0.0, extract_c4_score(Section("Draft", "0.99")))
        self.assertEqual(0.0, extract_c4_score(Section("C4 Score", "high")))


if __name__ == "__main__":
    unittest.main()
