# core/prompts.py
from typing import List, Sequence
from model.provider import ChatMessage

CHUNK_SUMMARY_SYSTEM_PROMPT = (
    "You summarize passages for a summarization pipeline. "
    "Always answer in the same language as the source text."
)

STRUCTURED_SUMMARY_SYSTEM_PROMPT = (
    "You are a meticulous summarization assistant. Always return a JSON object with the fields "
    '"tldr" (an array of 3 to 5 concise bullet strings) and "summary" (one paragraph of 150 to 220 words). '
    "Stay faithful to the provided text. No code fences, no prose outside the JSON object."
)

TEXT_SUMMARY_SYSTEM_PROMPT = (
    "You write clear, well-spaced, readable summaries in Markdown in the language: {language}.\n"
    "Strictly forbidden: JSON, HTML tags, code blocks.\n"
    "Keep normal spacing between words and punctuation.\n"
    "Use line breaks to separate headings, bullets and paragraphs.\n"
    "Follow exactly this structure and start immediately with the content:\n"
    "## TL;DR\n"
    "- 3 to 5 bullets, each line starts with '- ' (dash + space).\n"
    "\n"
    "## Summary\n"
    "One or two concise paragraphs (150 to 220 words in total). Stay factual, no speculation."
)

PAGE_ANSWER_SYSTEM_PROMPT = (
    "You answer questions about a web page using only the excerpts provided, in the language: {language}.\n"
    "Answer in readable Markdown. Strictly forbidden: JSON, HTML tags, code blocks.\n"
    "If the excerpts do not contain the answer, say so plainly instead of guessing."
)


def chunk_summary_messages(text: str, language: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=CHUNK_SUMMARY_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                f"Expected language: {language}. Give a concise summary (5 sentences at most) "
                f"of the following passage to prepare an overall summary.\n\n{text}"
            ),
        ),
    ]


def structured_summary_messages(text: str, language: str, url: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=STRUCTURED_SUMMARY_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                f"Expected language: {language}. Summarize the content from {url}. "
                f"Give verifiable facts, no speculation.\n\nCONTENT:\n{text}"
            ),
        ),
    ]


def text_summary_messages(chunks: Sequence[str], language: str, url: str) -> List[ChatMessage]:
    user = "\n".join(
        [
            f"Expected language: {language}. From the excerpts below, taken from {url}, "
            "write the requested summary with the structure above.",
            "Do not invent information. Do not cite sources unless they appear in the excerpts.",
            "",
            f"SELECTED EXCERPTS ({len(chunks)}):",
            "\n\n".join(chunks),
        ]
    )
    return [
        ChatMessage(role="system", content=TEXT_SUMMARY_SYSTEM_PROMPT.format(language=language)),
        ChatMessage(role="user", content=user),
    ]


def page_answer_messages(
    chunks: Sequence[str], language: str, url: str, question: str
) -> List[ChatMessage]:
    user = "\n".join(
        [
            f"Expected language: {language}. Page: {url}",
            f"QUESTION: {question}",
            "",
            f"EXCERPTS ({len(chunks)}):",
            "\n\n".join(chunks),
        ]
    )
    return [
        ChatMessage(role="system", content=PAGE_ANSWER_SYSTEM_PROMPT.format(language=language)),
        ChatMessage(role="user", content=user),
    ]
