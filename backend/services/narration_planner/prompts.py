"""Instruction text sent to the analysis service."""

BATCHED_DIRECTIVE = """\
You are an experienced presenter recording a voice-over for a slide deck.
Analyse the {count} slide images that follow, in the order given, and write a
natural spoken narration for every slide.

Requirements:
1. Narration must flow as one talk: refer back to earlier slides and use natural
   transitions such as "following on from the previous slide" or "next".
2. Explain what each slide shows; do not read bullet points verbatim.
3. When a slide contains foreign words or phonetic notation, spell them so a
   text-to-speech voice pronounces the intended sounds.
4. For every slide also write "tts_prompt": a short delivery instruction for the
   voice (tone, accent, pacing).

Return ONLY a JSON array with exactly {count} objects, one per slide, in slide order:
[
  {{"content": "narration for slide 1", "tts_prompt": "warm, clear, moderate pace"}},
  ...
]
"""

ROLLING_DIRECTIVE = """\
You are an experienced presenter recording a voice-over for a slide deck.
This is slide {position} of {count}. Write the spoken narration for the slide
image that follows.
{context}
Continue naturally from what has already been said, using a short transition
when it fits. Also write "tts_prompt": a short delivery instruction for the
voice (tone, accent, pacing).

Return ONLY a JSON object: {{"content": "...", "tts_prompt": "..."}}
"""


def build_batched_directive(count: int) -> str:
    return BATCHED_DIRECTIVE.format(count=count)


def build_rolling_directive(position: int, count: int, previous: list[str]) -> str:
    if previous:
        lines = "\n".join(f"- {text}" for text in previous)
        context = f"\nNarration of the preceding slides:\n{lines}\n"
    else:
        context = "\nThis is the opening slide.\n"
    return ROLLING_DIRECTIVE.format(position=position, count=count, context=context)
