import unittest

from codex_persistent_mcp.context import (
    CONTEXT_BEGIN,
    CONTEXT_END,
    ROLE_CARD_BEGIN,
    RoleCardTracker,
    inject_context_header,
    tool_responsibility,
)
from codex_persistent_mcp.prompts import build_final_prompt, build_plan_prompt, resume_hint


class ContextHeaderTests(unittest.TestCase):
    def test_header_fields(self) -> None:
        text = inject_context_header("my-origin", "codex_chat", "hello", include_role_card=False)
        lines = text.split("\n")
        self.assertEqual(CONTEXT_BEGIN, lines[0])
        self.assertEqual("origin=my-origin", lines[1])
        self.assertEqual("tool=codex_chat", lines[2])
        self.assertEqual("audience=ai_agent", lines[3])
        self.assertTrue(lines[4].startswith("responsibility=You are advising the calling AI agent"))
        self.assertEqual("sender=ai_agent", lines[5])
        self.assertEqual(CONTEXT_END, lines[6])
        self.assertTrue(text.endswith(f"{CONTEXT_END}\n\nhello"))
        self.assertNotIn(ROLE_CARD_BEGIN, text)

    def test_role_card_sits_between_header_and_text(self) -> None:
        text = inject_context_header("o", "codex_review", "body", include_role_card=True)
        self.assertLess(text.index(CONTEXT_END), text.index(ROLE_CARD_BEGIN))
        self.assertIn("Keep responses concise", text)
        self.assertTrue(text.endswith("<<<ROLE_CARD_END>>>\n\nbody"))

    def test_responsibility_per_tool(self) -> None:
        self.assertIn("proposed plan", tool_responsibility("codex_plan"))
        self.assertEqual(tool_responsibility("codex_plan"), tool_responsibility("codex_guard_plan"))
        self.assertIn("blockers vs suggestions", tool_responsibility("codex_guard_final"))
        self.assertEqual("Handle the request appropriately.", tool_responsibility("other"))


class RoleCardTrackerTests(unittest.TestCase):
    def test_once_per_known_session(self) -> None:
        tracker = RoleCardTracker()
        self.assertTrue(tracker.claim("s1"))
        self.assertFalse(tracker.claim("s1"))
        self.assertTrue(tracker.claim("s2"))

    def test_new_sessions_always_get_it_until_marked(self) -> None:
        tracker = RoleCardTracker()
        self.assertTrue(tracker.claim(None))
        self.assertTrue(tracker.claim(None))
        tracker.mark_sent("new-id")
        self.assertFalse(tracker.claim("new-id"))

    def test_disabled(self) -> None:
        tracker = RoleCardTracker(enabled=False)
        self.assertFalse(tracker.claim(None))
        self.assertFalse(tracker.claim("s1"))


class PromptTests(unittest.TestCase):
    def test_plan_prompt_layout(self) -> None:
        prompt = build_plan_prompt(" must do X ", " step 1 ", " no network ")
        self.assertEqual(
            "Reply in Chinese.\n## Requirements\nmust do X\n## Constraints\nno network\n\n## Proposed plan\nstep 1",
            prompt,
        )

    def test_plan_prompt_without_constraints(self) -> None:
        self.assertEqual(
            "Reply in English.\n## Requirements\nreq\n## Proposed plan\nplan",
            build_plan_prompt("req", "plan", language="English"),
        )

    def test_final_prompt_layout(self) -> None:
        self.assertEqual(
            "Reply in Chinese.\n## Change summary\nchanged\n## Test results\nall green\n\n## Open questions\nnone?\n",
            build_final_prompt("changed", "all green", "none?"),
        )
        self.assertEqual("Reply in Chinese.\n## Change summary\nchanged", build_final_prompt("changed"))

    def test_resume_hint(self) -> None:
        self.assertEqual("codex resume abc-123", resume_hint("abc-123"))


if __name__ == "__main__":
    unittest.main()
