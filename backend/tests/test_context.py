from docs_agent.services.rag.context import (
    PASSAGE_SEPARATOR,
    RETRIEVAL_FAILED_CONTEXT,
    assemble_context,
)
from docs_agent.services.prompt_builder import compile_agent_prompt

from conftest import make_chunk


def test_no_chunks_gives_retrieval_notice():
    assert assemble_context([]) == RETRIEVAL_FAILED_CONTEXT


def test_blank_chunks_are_dropped():
    chunks = [make_chunk("1", "   "), make_chunk("2", "")]
    assert assemble_context(chunks) == RETRIEVAL_FAILED_CONTEXT


def test_passages_joined_in_index_order():
    chunks = [make_chunk("1", "First passage."), make_chunk("2", "Second passage.")]
    assert assemble_context(chunks) == f"First passage.{PASSAGE_SEPARATOR}Second passage."


def test_selected_text_appended_after_passages():
    context = assemble_context([make_chunk("1", "About URDF.")], selected_text="  a link element ")
    assert context.startswith("About URDF.")
    assert 'USER SELECTED TEXT:\n"a link element"' in context


def test_selected_text_with_failed_retrieval_keeps_notice():
    context = assemble_context([], selected_text="joint limits")
    assert context.startswith(RETRIEVAL_FAILED_CONTEXT)
    assert "joint limits" in context


def test_trimming_keeps_whole_passages_within_budget():
    chunks = [make_chunk("1", "a" * 40), make_chunk("2", "b" * 40), make_chunk("3", "c" * 40)]
    context = assemble_context(chunks, max_chars=100)
    assert context == "a" * 40 + PASSAGE_SEPARATOR + "b" * 40
    assert "c" not in context


def test_oversized_top_passage_is_truncated_not_dropped():
    context = assemble_context([make_chunk("1", "x" * 500)], max_chars=50)
    assert context == "x" * 50


def test_context_never_empty():
    cases = [
        [],
        [make_chunk("1", "")],
        [make_chunk("1", "text")],
    ]
    for chunks in cases:
        for selected in (None, "", "sel"):
            assert assemble_context(chunks, selected, max_chars=10)


def test_agent_prompt_embeds_context():
    prompt = compile_agent_prompt("CTX-123")
    assert "BOOK CONTEXT:\nCTX-123\n---" in prompt
