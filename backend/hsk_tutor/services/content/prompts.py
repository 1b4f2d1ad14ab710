"""
Prompt templates for content generation.

Every template asks for a JSON object with an "items" array so that JSON
mode can be used uniformly across kinds. Learners are Vietnamese speakers,
so meanings, translations and explanations are requested in Vietnamese.
"""

from typing import Optional

from hsk_tutor.enums import ContentKind

SYSTEM_PROMPT = (
    "You are an expert teacher of Mandarin Chinese for Vietnamese learners "
    "preparing for the HSK exams. Always answer with valid JSON only."
)

VOCABULARY_PROMPT = """Generate a list of {count} HSK level {level} vocabulary words.
For each word, provide the Hanzi, Pinyin, Vietnamese meaning, part of speech,
and a simple example sentence in Chinese with Pinyin and Vietnamese translation.

Return JSON:
{{
    "items": [
        {{
            "level": {level},
            "hanzi": "...",
            "pinyin": "...",
            "meaning_vi": "...",
            "pos": "...",
            "example_zh": "...",
            "example_pinyin": "...",
            "example_vi": "..."
        }}
    ]
}}
"""

WRITING_POOL_PROMPT = """Generate a list of {count} unique, common simplified Chinese characters
for a writing practice exercise, suitable for an HSK level {level} learner.
Each item must be exactly ONE character. For each character, provide:
1. The Hanzi itself (simplified form).
2. The Pinyin romanization.
3. The Vietnamese meaning.
4. An array of SVG path strings for the stroke order. The SVG viewbox is 1024x1024.
5. An array of 2-3 common example words that use this character, with the full
   word, its pinyin, and its Vietnamese meaning.

Return JSON:
{{
    "items": [
        {{
            "hanzi": "...",
            "pinyin": "...",
            "vi_meaning": "...",
            "strokes": ["M100,100 L200,200", "..."],
            "example_words": [{{"word": "...", "pinyin": "...", "meaning_vi": "..."}}]
        }}
    ]
}}
"""

WRITING_KEYWORD_PROMPT = """A learner wants to practice writing a single Chinese character related
to the keyword: "{keyword}".
Find the most relevant single simplified Chinese character for this keyword. If the
keyword is a multi-character word, pick the most important or common character from it.
Provide the character, its Pinyin, its Vietnamese meaning, an array of SVG path strings
for the stroke order (viewbox 1024x1024), and 2-3 common example words.

Return JSON:
{{
    "items": [
        {{
            "hanzi": "...",
            "pinyin": "...",
            "vi_meaning": "...",
            "strokes": ["..."],
            "example_words": [{{"word": "...", "pinyin": "...", "meaning_vi": "..."}}]
        }}
    ]
}}
"""

EXAM_PROMPT = """Generate a complete and unique HSK level {level} mock exam with exactly {count} questions.
The exam must be different every time.
Divide the questions into three sections: 'Nghe hiểu' (Listening Comprehension),
'Đọc hiểu' (Reading Comprehension) and 'Viết' (Writing: sentence completion, grammar).
For each question, provide:
1. 'section': the section name ('Nghe hiểu', 'Đọc hiểu' or 'Viết').
2. 'question_text': the question. For 'Nghe hiểu' this is the question, not the audio.
3. 'audio_script': ONLY for 'Nghe hiểu', the text read aloud to the learner; otherwise null.
4. 'options': an array of {option_count} distinct multiple-choice options.
5. 'correct_answer': the exact string of the correct option from 'options'.
6. 'explanation': a brief explanation in Vietnamese of why the answer is correct.

Return JSON:
{{
    "items": [
        {{
            "section": "...",
            "question_text": "...",
            "audio_script": null,
            "options": ["...", "...", "...", "..."],
            "correct_answer": "...",
            "explanation": "..."
        }}
    ]
}}
"""

CONVERSATION_PROMPT = """Generate a short, simple conversation in Chinese {topic_clause} suitable for
HSK level {level}. The conversation should have around 6-8 turns between two people
(A and B) and use vocabulary and grammar primarily from HSK level {level} or below.
For each line, provide a topic for the entire conversation (the same for all turns),
the turn number starting at 1, the Chinese text (zh), Pinyin, and the Vietnamese
translation (vi).

Return JSON:
{{
    "items": [
        {{"topic": "...", "turn": 1, "zh": "...", "pinyin": "...", "vi": "..."}}
    ]
}}
"""

CONVERSATION_CONTINUE_PROMPT = """This is an existing conversation for an HSK level {level} learner.
The topic is "{topic}".
Here is the conversation so far:
{history}

Generate the next 2 to 4 turns of this conversation, continuing the dialogue logically.
Keep the same HSK level and topic. For each new line, provide the same topic "{topic}",
the turn number (continuing from {last_turn}), the Chinese text (zh), the Pinyin and
the Vietnamese translation (vi).

Return JSON:
{{
    "items": [
        {{"topic": "{topic}", "turn": {next_turn}, "zh": "...", "pinyin": "...", "vi": "..."}}
    ]
}}
"""

TRANSLATION_PROMPT = """Translate the following text into Chinese or Vietnamese, whichever is the
opposite of the input language. Provide a detailed analysis including Pinyin, the
Vietnamese meaning, 2-3 example sentences and 1-2 relevant grammar notes.
The input text is: "{text}"

Return JSON:
{{
    "items": [
        {{
            "source_lang": "zh|vi",
            "target_lang": "vi|zh",
            "hanzi": "...",
            "pinyin": "...",
            "vi_meaning": "...",
            "examples": [{{"zh": "...", "pinyin": "...", "vi": "..."}}],
            "grammar_notes": ["..."]
        }}
    ]
}}
"""

DICTIONARY_PROMPT = """Provide a detailed dictionary entry for the word "{word}". The word can be in
either Vietnamese or Chinese. The entry should include the Hanzi, Pinyin, detailed
Vietnamese meaning(s) including part of speech, 2-3 example sentences (with pinyin
and Vietnamese translation), and any relevant grammar notes or synonyms.
Treat it as a dictionary lookup, not a full-sentence translation.

Return JSON:
{{
    "items": [
        {{
            "source_lang": "zh|vi",
            "target_lang": "vi|zh",
            "hanzi": "...",
            "pinyin": "...",
            "vi_meaning": "...",
            "examples": [{{"zh": "...", "pinyin": "...", "vi": "..."}}],
            "grammar_notes": ["..."]
        }}
    ]
}}
"""


def build_prompt(
    kind: ContentKind,
    level: Optional[int],
    count: int,
    topic: Optional[str] = None,
    option_count: int = 4,
) -> str:
    """
    Render the prompt for a content request.

    For translation and dictionary entries the topic carries the text to
    look up; for writing characters a topic is the learner's keyword.
    """
    if kind == ContentKind.VOCABULARY:
        return VOCABULARY_PROMPT.format(count=count, level=level)
    if kind == ContentKind.WRITING_CHARACTER:
        if topic:
            return WRITING_KEYWORD_PROMPT.format(keyword=topic)
        return WRITING_POOL_PROMPT.format(count=count, level=level)
    if kind == ContentKind.EXAM_QUESTION:
        return EXAM_PROMPT.format(count=count, level=level, option_count=option_count)
    if kind == ContentKind.CONVERSATION:
        topic_clause = f'about the topic "{topic}"' if topic else "on a random everyday topic"
        return CONVERSATION_PROMPT.format(topic_clause=topic_clause, level=level)
    if kind == ContentKind.TRANSLATION:
        return TRANSLATION_PROMPT.format(text=topic or "")
    if kind == ContentKind.DICTIONARY_ENTRY:
        return DICTIONARY_PROMPT.format(word=topic or "")
    raise ValueError(f"No prompt for content kind: {kind}")
