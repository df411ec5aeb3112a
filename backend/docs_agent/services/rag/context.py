"""
Context Assembler

Joins retrieved chunk texts into the context block of the system prompt.

- Chunks keep the order the vector index returned (similarity-ranked).
- Empty chunks are dropped.
- Passages are added whole until the character budget is reached; the
  top passage is always kept, truncated if it alone exceeds the budget.
- When nothing usable was retrieved (index empty, or embedding/search
  failed) a fixed notice replaces the context, so the model knows it is
  answering from general knowledge instead of silently seeing nothing.
- User-highlighted text is appended as a labelled block after the passages.
"""

from docs_agent.services.rag.models import RetrievedChunk

PASSAGE_SEPARATOR = "\n\n---\n\n"

RETRIEVAL_FAILED_CONTEXT = (
    "Error retrieving context from database. "
    "Please rely on your general knowledge if related to robotics."
)

SELECTED_TEXT_BLOCK = (
    "\n\nUSER SELECTED TEXT:\n\"{selected_text}\"\n\n"
    "Please prioritize this selected text in your explanation.\n"
)


def _trim_passages(passages: list[str], max_chars: int | None) -> list[str]:
    if not max_chars or max_chars <= 0:
        return passages

    kept: list[str] = []
    total = 0
    for passage in passages:
        extra = len(passage) + (len(PASSAGE_SEPARATOR) if kept else 0)
        if total + extra > max_chars:
            if not kept:
                kept.append(passage[:max_chars])
            break
        kept.append(passage)
        total += extra
    return kept


def assemble_context(
    chunks: list[RetrievedChunk],
    selected_text: str | None = None,
    max_chars: int | None = None,
) -> str:
    """
    Build the context string for the system prompt.

    Never returns an empty string: it holds retrieved passages, the
    retrieval-failed notice, or either of those plus the selected text.

    Args:
        chunks: Retrieved chunks, highest similarity first (may be empty)
        selected_text: Text the user highlighted on the page, if any
        max_chars: Budget for the joined passages; None disables trimming
    """
    passages = [c.content.strip() for c in chunks if c.content and c.content.strip()]
    passages = _trim_passages(passages, max_chars)

    context = PASSAGE_SEPARATOR.join(passages) if passages else RETRIEVAL_FAILED_CONTEXT

    if selected_text and selected_text.strip():
        context += SELECTED_TEXT_BLOCK.format(selected_text=selected_text.strip())

    return context
