from __future__ import annotations


def _section(title: str, body: str | None) -> str:
    # Optional sections keep a trailing blank line before the next heading.
    return f"## {title}\n{body.strip()}\n" if body else ""


def _join(parts: list[str]) -> str:
    return "\n".join(part for part in parts if part)


def build_plan_prompt(requirements: str, plan: str, constraints: str | None = None, *, language: str = "Chinese") -> str:
    return _join(
        [
            f"Reply in {language}.",
            "## Requirements",
            requirements.strip(),
            _section("Constraints", constraints),
            "## Proposed plan",
            plan.strip(),
        ]
    )


def build_final_prompt(
    change_summary: str,
    test_results: str | None = None,
    open_questions: str | None = None,
    *,
    language: str = "Chinese",
) -> str:
    return _join(
        [
            f"Reply in {language}.",
            "## Change summary",
            change_summary.strip(),
            _section("Test results", test_results),
            _section("Open questions", open_questions),
        ]
    )


def resume_hint(session_id: str) -> str:
    return f"codex resume {session_id}"
