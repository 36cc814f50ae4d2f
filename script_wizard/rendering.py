"""Plain-text and Markdown renderings of a generated script."""

from typing import Optional

from .models import GenerationResult, QualityScore, ScriptResult


def _fmt_time(value) -> str:
    if value is None:
        return "?"
    if isinstance(value, float) and value.is_integer():
        return f"{int(value)}s"
    if isinstance(value, (int, float)):
        return f"{value}s"
    return str(value)


def _sections(result: ScriptResult) -> list[tuple[str, list[str]]]:
    return [
        ("Transitions", [
            f"[{_fmt_time(t.time_offset)}] {t.kind or 'cut'}: {t.description or ''}".rstrip()
            for t in result.transitions
        ]),
        ("B-roll", [
            f"[{_fmt_time(b.time_range)}] {b.content or ''}".rstrip()
            for b in result.b_roll
        ]),
        ("Text overlays", [
            f"[{_fmt_time(o.time)}] {o.text or ''}" + (f" ({o.style})" if o.style else "")
            for o in result.text_overlays
        ]),
        ("Sound effects", [
            f"[{_fmt_time(s.time)}] {s.effect or ''}".rstrip()
            for s in result.sound_effects
        ]),
    ]


def result_to_text(result: GenerationResult) -> str:
    if isinstance(result, str):
        return result

    parts = [result.script or ""]
    for title, lines in _sections(result):
        if lines:
            parts.append(f"{title}:\n" + "\n".join(f"- {line}" for line in lines))
    return "\n\n".join(p for p in parts if p)


def result_to_markdown(
    result: GenerationResult, title: str = "Script", score: Optional[QualityScore] = None
) -> str:
    """Render a result as a Markdown document, optionally with its score."""
    lines = [f"# {title}", ""]
    if isinstance(result, str):
        lines.append(result)
    else:
        lines.append(result.script or "")
        for section, entries in _sections(result):
            if entries:
                lines.extend(["", f"## {section}", ""])
                lines.extend(f"- {entry}" for entry in entries)

    if score is not None:
        lines.extend([
            "",
            "## Quality score",
            "",
            f"- Overall: {score.overall}",
            f"- Creativity: {score.creativity}",
            f"- Engagement: {score.engagement}",
            f"- Clarity: {score.clarity}",
            f"- Timing: {score.timing}",
        ])
    return "\n".join(lines) + "\n"
