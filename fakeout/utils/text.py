import re
from html import unescape

_SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+')


def clean_text(html_or_text):
    """Strip HTML tags and normalize whitespace."""
    text = re.sub(r'<[^>]+>', ' ', html_or_text or '')
    text = unescape(text)
    text = re.sub(r'\s+', ' ', text).strip()
    return text


def truncate_to_sentences(text, n=4, max_chars=500):
    """Keep text under max_chars; if longer, cut to the first n sentences."""
    text = text or ''
    if len(text) <= max_chars:
        return text
    sentences = _SENTENCE_SPLIT.split(text)
    text = ' '.join(sentences[:n])
    if len(text) > max_chars:
        text = text[:max_chars].rsplit(' ', 1)[0].rstrip(',;:') + '...'
    return text


def normalize_title(title):
    return (title or '').strip().lower()


def ensure_terminal_punctuation(text):
    text = (text or '').strip()
    if text and text[-1] not in '.!?':
        return text + '.'
    return text


def lowercase_first(text):
    if not text:
        return text
    return text[0].lower() + text[1:]


def strip_terminal_punctuation(text):
    return (text or '').rstrip().rstrip('.!?')
