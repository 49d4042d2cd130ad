"""
Text utilities for the figure capture workflow.

Handles LLM output cleanup and tag stripping.
"""
import re
from typing import List, Tuple

from core.constants import DEFAULT_CAPTION, FIG_CAPTURE_PATTERN
from utils.bbox_utils import CROP_TAG_RE

FIG_CAPTURE_RE = re.compile(FIG_CAPTURE_PATTERN)

# Unterminated or partial crop tag, as left inside a lazily matched caption
CROP_FRAGMENT_RE = re.compile(r'\[CROP\b[^\[\]]*\]?', re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """
    Remove Markdown code fences wherever they appear.

    Models sometimes wrap the whole answer (or individual pages) in
    ```markdown fences; the fence lines are dropped, their content kept.
    """
    if not text:
        return ""

    text = re.sub(r'```[a-z]*\n', '', text, flags=re.IGNORECASE)
    return re.sub(r'\n```', '', text)


def normalize_math_delimiters(text: str) -> str:
    """
    Convert dollar-delimited math to standard LaTeX delimiters.

    ``$$...$$`` becomes ``\\[...\\]`` and ``$...$`` becomes ``\\(...\\)``.
    Inline matches require non-space characters next to both dollars so
    currency amounts are left alone.
    """
    text = re.sub(r'\$\$(.*?)\$\$', r'\\[\1\\]', text, flags=re.DOTALL)
    return re.sub(r'([^\\]|^)\$([^\s$].*?[^\s$])\$', r'\1\\(\2\\)', text)


def normalize_llm_output(text: str) -> str:
    """
    Post-process raw OCR model output for stable rendering.

    Args:
        text: Raw model output

    Returns:
        Text without code fences and with normalized math delimiters
    """
    if not text:
        return ""

    return normalize_math_delimiters(strip_code_fences(text.strip()))


def strip_crop_tags(text: str) -> str:
    """
    Remove every crop tag from text.

    Repeats until the text is stable: removing an inner tag can close up a
    new tag around it, e.g. ``[CROP:1,2,3,4[CROP:5,6,7,8|x]]``.
    """
    if not text:
        return ""

    while True:
        stripped = CROP_TAG_RE.sub('', text)
        if stripped == text:
            return stripped
        text = stripped


def clean_caption(caption: str) -> str:
    """
    Make a tag caption safe to embed in a figure reference.

    Drops crop-tag fragments and square brackets, which would otherwise end
    the reference early or turn into a crop tag once the closing bracket of
    the reference follows them.
    """
    caption = CROP_FRAGMENT_RE.sub(' ', strip_crop_tags(caption or ''))
    caption = re.sub(r'[\[\]]', ' ', caption)
    caption = re.sub(r'\s+', ' ', caption).strip()
    return caption or DEFAULT_CAPTION


def extract_figure_references(text: str) -> List[Tuple[str, str]]:
    """
    Find embedded figure references.

    Returns:
        List of (image_id, caption) tuples in text order
    """
    if not text:
        return []
    return [(m.group(1), m.group(2).strip()) for m in FIG_CAPTURE_RE.finditer(text)]

