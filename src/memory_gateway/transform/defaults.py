"""Default transform sources and the truncation idiom they follow."""

from __future__ import annotations

TRUNCATION_MARKER = "... [truncated]"
DEFAULT_MAX_LENGTH = 1000


def truncate(
    text: str,
    max_length: int = DEFAULT_MAX_LENGTH,
    marker: str = TRUNCATION_MARKER,
) -> str:
    """Cut ``text`` to ``max_length`` characters and append ``marker``.

    Text at or below the limit is returned unchanged, so a truncated result
    is always exactly ``max_length + len(marker)`` characters long.
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + marker


def render_before_save_source(
    max_length: int = DEFAULT_MAX_LENGTH,
    marker: str = TRUNCATION_MARKER,
) -> str:
    """Build the default before-save transform for a given length limit."""
    return f'''"""
Filter data BEFORE saving to internal memory.

input:  user input message
output: AI response message
Returns {{"input": str, "output": str}}
"""
import re


def filter_before_save(input, output):
    if output:
        # [Used tools: ...] blocks
        output = re.sub(r"\\[Used tools:[\\s\\S]*?\\]\\s*", "", output)

        # "; Tool: ..., Input: ..., Result: [...]]" trailers
        output = re.sub(r";\\s*Tool:[\\s\\S]*?Result:\\s*\\[[\\s\\S]*?\\]\\]", "", output)

        # Orphaned semicolons and brackets at the start, semicolons at the end
        output = re.sub(r"^[;\\]\\s]+", "", output)
        output = re.sub(r"[;\\s]+$", "", output)

        # JSON metadata
        output = re.sub(r"\\{{[\\s\\S]*?\\"action\\"[\\s\\S]*?\\}}", "", output)

        output = re.sub(r"\\s+", " ", output)
        output = output.strip()

    MAX_LENGTH = {max_length}
    if output and len(output) > MAX_LENGTH:
        output = output[:MAX_LENGTH] + {marker!r}

    return {{"input": input, "output": output}}
'''


DEFAULT_BEFORE_SAVE = render_before_save_source()

DEFAULT_AFTER_RETRIEVE = '''"""
Filter data AFTER retrieving from internal memory.

messages: list of message objects from memory
Returns the (possibly modified) list of messages
"""


def filter_after_retrieve(messages):
    return messages
'''
