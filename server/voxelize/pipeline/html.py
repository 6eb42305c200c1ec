# ─────────────────────────────────────────────────────────────────────────────
# Scene Markup Extraction — pull the HTML document out of a model answer
# ─────────────────────────────────────────────────────────────────────────────


import re

_FENCED_HTML = re.compile(r"```(?:html)?\s*\n(.*?)```", re.DOTALL | re.IGNORECASE)
_DOCUMENT_START = re.compile(r"<!DOCTYPE html|<html", re.IGNORECASE)
_DOCUMENT_END = re.compile(r"</html\s*>", re.IGNORECASE)


def extract_html(text: str) -> str:
    """Return the HTML document embedded in ``text``.

    Handles, in order: a fenced code block, a bare document surrounded by
    prose, and plain markup (returned trimmed).
    """
    fenced = _FENCED_HTML.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = _DOCUMENT_START.search(text)
    if start:
        end = None
        for end in _DOCUMENT_END.finditer(text, start.start()):
            pass
        stop = end.end() if end else len(text)
        return text[start.start() : stop].strip()

    return text.strip()
