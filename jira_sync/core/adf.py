"""Plain-text extraction from Atlassian Document Format (ADF)."""

from typing import Any, List


# Sentinel pushed on the work stack to emit a newline once a paragraph's children are done
_PARAGRAPH_END = object()


def extract_text_from_adf(document: Any) -> str:
    """
    Flatten an ADF tree into plain text.

    Text nodes contribute their ``text`` verbatim, ``content`` lists are
    walked in order and every ``paragraph`` with a ``content`` list is
    followed by a newline.
    Unknown node shapes contribute nothing. The result is stripped.

    Examples:
        >>> extract_text_from_adf({"type": "doc", "content": [
        ...     {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]},
        ...     {"type": "paragraph", "content": [{"type": "text", "text": "World"}]},
        ... ]})
        'Hello\\nWorld'
    """
    parts: List[str] = []
    stack: List[Any] = [document]

    while stack:
        node = stack.pop()

        if node is _PARAGRAPH_END:
            parts.append("\n")
        elif isinstance(node, list):
            stack.extend(reversed(node))
        elif isinstance(node, dict):
            text = node.get("text")
            if isinstance(text, str):
                parts.append(text)

            content = node.get("content")
            if isinstance(content, list):
                if node.get("type") == "paragraph":
                    stack.append(_PARAGRAPH_END)
                stack.extend(reversed(content))

    return "".join(parts).strip()
