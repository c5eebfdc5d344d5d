"""Prompt templates for phrase generation and kanji lookup."""
from __future__ import annotations

import json
from typing import Sequence

SYSTEM_PROMPT = (
    "You are a meticulous Japanese teacher who writes flashcard data for "
    "adult learners. You answer with strict JSON only."
)

_PHRASE_SCHEMA = json.dumps(
    [
        {
            "lexeme": "出口",
            "englishMeaning": "Exit",
            "phoneticReading": "でぐち",
            "phoneticRomanization": "deguchi",
            "breakdown": "出 = exit / 口 = mouth",
        }
    ],
    ensure_ascii=False,
    indent=2,
)

_KANJI_SCHEMA = json.dumps(
    [
        {
            "lexeme": "出",
            "englishMeaning": "exit, go out",
            "phoneticReading": "で",
            "phoneticRomanization": "de",
        }
    ],
    ensure_ascii=False,
    indent=2,
)

PHRASES_TEMPLATE = "\n".join(
    [
        "TASK: Write {count} Japanese words or short phrases a traveller meets in the domain: {domain}.",
        "CONSTRAINTS:",
        "- Prefer vocabulary written on real signs, menus and notices.",
        "- lexeme is the phrase exactly as written (kanji and kana).",
        "- breakdown explains each kanji word, separated by ' / ', e.g. '出 = exit / 口 = mouth'.",
        "- If the phrase contains no kanji at all, set breakdown to 'kata only'.",
        "- Return a JSON array only, no prose, matching this shape:",
    ]
)

EXCLUSION_TEMPLATE = (
    "\n\nIMPORTANT: Do NOT include any of these existing phrases in your response:\n"
    "{phrases}\n\nGenerate completely NEW phrases that are different from the ones listed above."
)

KANJI_TEMPLATE = "\n".join(
    [
        "TASK: Describe each of these single kanji: {kanji_list}",
        "CONSTRAINTS:",
        "- One object per kanji, lexeme is the single kanji character.",
        "- englishMeaning lists the core meanings, comma separated.",
        "- phoneticReading is the most common reading in kana; phoneticRomanization its romaji.",
        "- Return a JSON array only, no prose, matching this shape:",
    ]
)


def build_phrases_prompt(domain: str, count: int, exclude: Sequence[str] = ()) -> str:
    # schemas contain braces, so they are appended after formatting
    prompt = PHRASES_TEMPLATE.format(count=count, domain=domain) + "\n" + _PHRASE_SCHEMA
    if exclude:
        prompt += EXCLUSION_TEMPLATE.format(phrases=", ".join(exclude))
    return prompt


def build_kanji_prompt(lexemes: Sequence[str]) -> str:
    return KANJI_TEMPLATE.format(kanji_list=", ".join(lexemes)) + "\n" + _KANJI_SCHEMA


__all__ = [
    "SYSTEM_PROMPT",
    "build_kanji_prompt",
    "build_phrases_prompt",
]
