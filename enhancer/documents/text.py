import re

from enhancer.pipeline.models import ExtractedText

_STARTS_UPPER = re.compile(r"^[A-Z]")


def classify_lines(raw_text: str) -> ExtractedText:
    """Split raw text into title, headings, body and captions by line shape.

    The first short line is the title; short capitalized lines are headings;
    other very short lines are captions; everything else is body text.
    """
    title: str | None = None
    headings: list[str] = []
    body: list[str] = []
    captions: list[str] = []

    lines = [line.strip() for line in raw_text.splitlines() if line.strip()]
    for index, line in enumerate(lines):
        if index == 0 and len(line) < 100:
            title = line
        elif len(line) < 50 and _STARTS_UPPER.match(line):
            headings.append(line)
        elif len(line) < 30:
            captions.append(line)
        else:
            body.append(line)

    return ExtractedText(
        title=title,
        headings=tuple(headings),
        body_text=tuple(body),
        captions=tuple(captions),
    )
