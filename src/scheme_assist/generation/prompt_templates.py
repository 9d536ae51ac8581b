"""All prompt templates for the scheme assistant."""

from __future__ import annotations

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "bn": "Bengali",
    "ta": "Tamil",
    "te": "Telugu",
    "mr": "Marathi",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "pa": "Punjabi",
}

ASSISTANT_PERSONA = """You are Sahayak, a patient assistant that helps citizens understand government welfare schemes.
Rules:
- Speak simply; your answer will be read aloud.
- Use ONLY the scheme context provided.
- Mention the scheme id in brackets when you use a piece of context, e.g. [PM-KISAN].
- If the context does not answer the question, say that you do not have enough information.
- Be concise: at most five sentences."""

STRICT_GROUNDING_INSTRUCTION = """Your previous answer used information that is not in the context.
Cite ONLY the context below. Every sentence must restate facts that appear in the context.
If the context does not contain the answer, reply that you do not have enough information."""

ANSWER_PROMPT = """Scheme context:
{context_block}

Question: {query}

{strict_instruction}Answer only in {language_name}, and only from the scheme context above."""

TRANSLATION_SYSTEM = """You are a translation engine. Output only the translation, with no notes or quotes."""

TRANSLATION_PROMPT = """Translate the following text from {source_name} to {target_name}.

Text:
{text}"""


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.lower(), code)


def format_context_block(documents: list, max_documents: int = 5) -> str:
    """Tag each document with the scheme it came from."""
    lines = []
    for doc in documents[:max_documents]:
        section = getattr(doc.section, "value", doc.section)
        lines.append(f"[{doc.scheme_id}] ({section}) {doc.text}")
    return "\n\n".join(lines)


def build_answer_prompt(query: str, documents: list, language: str, strict: bool = False) -> str:
    return ANSWER_PROMPT.format(
        context_block=format_context_block(documents),
        query=query,
        strict_instruction=STRICT_GROUNDING_INSTRUCTION + "\n\n" if strict else "",
        language_name=language_name(language),
    )
