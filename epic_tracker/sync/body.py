"""Markdown body generation for epic issues."""

from ..models import Epic


def format_epic_body(epic: Epic) -> str:
    """Render the issue body for an epic.

    Sections: goal, task checklist from sub-issues, and the progress journey
    with the most recent entry first.

    Args:
        epic: Epic to render

    Returns:
        Markdown text ready for the remote issue body
    """
    lines = ["## Goal", "", epic.description.strip() or epic.title, ""]

    if epic.sub_issues:
        lines.append("## Tasks")
        lines.append("")
        for sub_issue in epic.sub_issues:
            checkbox = "[x]" if sub_issue.state == "closed" else "[ ]"
            lines.append(f"- {checkbox} #{sub_issue.number} {sub_issue.title}")
        lines.append("")

    if epic.journey:
        lines.append("## Progress Journey")
        lines.append("")
        # sorted() is stable, so entries sharing a timestamp keep append order
        for entry in sorted(epic.journey, key=lambda e: e.timestamp, reverse=True):
            stamp = entry.timestamp.strftime("%Y-%m-%d %H:%M")
            lines.append(f"- **{stamp} UTC** - {entry.message}")
            if entry.agent:
                lines.append(f"  - Agent: {entry.agent}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
