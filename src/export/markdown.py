"""Markdown builders for Cursor composer conversations."""

from __future__ import annotations

from typing import List

from composer import CodeBlock, Conversation, Role, Snippet, Turn

from .utils import file_link, join_file_links

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
USER_HEADING = "## User"
ASSISTANT_HEADING = "## Cursor"


def quote_lines(text: str) -> List[str]:
    lines = text.splitlines()
    if not lines:
        return [">"]
    return [f"> {line}" if line else ">" for line in lines]


def render_session_info(conversation: Conversation) -> List[str]:
    conversation.refresh_end_time()
    lines = ["## Session Info", "", f"- Start time:\t{conversation.start_time.strftime(TIME_FORMAT)}"]
    end_time = conversation.end_time
    if end_time is not None:
        lines.append(f"- End time:\t{end_time.strftime(TIME_FORMAT)}")
    if conversation.related_files:
        lines.append(f"- Related files:\t{join_file_links(conversation.related_files)}")
    return lines


def render_snippets(snippets: List[Snippet]) -> List[str]:
    lines = ["Referenced snippets:"]
    for snippet in snippets:
        if snippet.file_path:
            lines.append(f"From {file_link(snippet.file_path)}:")
        lines.append(snippet.text)
    return lines


def render_user_turn(turn: Turn) -> List[str]:
    lines = [USER_HEADING, ""]
    if turn.referenced_files:
        lines.extend([f"Referenced files:\t{join_file_links(turn.referenced_files)}", ""])
    if turn.referenced_snippets:
        lines.extend(render_snippets(turn.referenced_snippets))
    lines.extend(quote_lines(turn.text))
    return lines


def render_code_block(block: CodeBlock) -> List[str]:
    info = block.language_tag
    if block.file_path:
        info = f"{info}:{file_link(block.file_path)}"
    return [f"```{info}", block.content, "```"]


def render_assistant_turn(turn: Turn) -> List[str]:
    lines = [ASSISTANT_HEADING, "", turn.text]
    for block in turn.code_blocks:
        if not block.content:
            continue
        lines.append("")
        lines.extend(render_code_block(block))
    return lines


def render_turn(turn: Turn) -> List[str]:
    if turn.role == Role.USER:
        return render_user_turn(turn)
    if turn.role == Role.ASSISTANT:
        return render_assistant_turn(turn)
    return []


def render_conversation_markdown(conversation: Conversation) -> str:
    """Render ``conversation`` as a Markdown document.

    Layout: title heading, a Session Info section, then one section per user
    or assistant turn in stored order. Turns with any other role are omitted.
    """

    lines: List[str] = [f"# {conversation.title}", ""]
    lines.extend(render_session_info(conversation))
    for turn in conversation.turns:
        rendered = render_turn(turn)
        if rendered:
            lines.append("")
            lines.extend(rendered)

    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines) + "\n"
