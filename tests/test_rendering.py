import io
import unittest
from contextlib import redirect_stdout

from zero_engine.parsing import Section
from zero_engine.rendering import Spinner, c4_gauge, render_history, render_message, render_section, render_turn_footer
from zero_engine.sessions.models import Citation, Message, Translation


class RenderingTests(unittest.TestCase):
    def test_gauge(self) -> None:
        self.assertEqual("[##########..........] 0.50", c4_gauge(0.5))
        self.assertEqual("[####################] 1.20", c4_gauge(1.2))

    def test_c4_section_includes_gauge(self) -> None:
        text = render_section(Section("C4 Score", "0.25 - vague request"))
        self.assertEqual("-- C4 Score --\n[#####...............] 0.25\n0.25 - vague request", text)

    def test_ai_message_blocks(self) -> None:
        message = Message(
            id=7,
            author="ai",
            content="[Final Output]\nDone.",
            citations=[Citation(uri="https://a.example", title="A")],
            translation=Translation(lang="German", content="Fertig."),
        )

        text = render_message(message, user_prefix="you> ", ai_prefix="assistant> ")

        self.assertTrue(text.startswith("assistant> #7\n-- Final Output --\nDone."))
        self.assertIn("-- Translated Output (German) --\nFertig.", text)
        self.assertIn("- A <https://a.example>", text)

    def test_history_window_keeps_last_messages(self) -> None:
        messages = [Message(id=i, author="user", content=f"m{i}") for i in range(55)]

        blocks = render_history(messages, user_prefix="> ", ai_prefix="< ")

        self.assertEqual(51, len(blocks))
        self.assertIn("5 earlier message(s) not shown", blocks[0])
        self.assertEqual("> m5", blocks[1])
        self.assertEqual("> m54", blocks[-1])

    def test_turn_footer(self) -> None:
        message = Message(id=1, author="ai", content="[C4 Score]\n0.90\n\n[Draft]\nx", citations=[])
        self.assertEqual("C4 [##################..] 0.90", render_turn_footer(message))


class SpinnerTests(unittest.TestCase):
    def test_context_manager_leaves_cursor_after_prefix(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            with Spinner(prefix="assistant> ", label=" Working..."):
                pass

        self.assertTrue(out.getvalue().endswith("\rassistant> "))

    def test_stop_is_idempotent(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            spinner = Spinner()
            spinner.start()
            spinner.stop()
            written = out.getvalue()
            spinner.stop()

        self.assertEqual(written, out.getvalue())


if __name__ == "__main__":
    unittest.main()
