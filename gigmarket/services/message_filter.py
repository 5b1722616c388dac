"""
Outbound chat filter.

Blocks anything that looks like an attempt to trade contact details and move
the engagement off the platform. Recall is deliberately favoured over
precision: long unrelated numbers are blocked too. The filter is applied
whether or not the contact fee has been paid.
"""
import re
from collections import namedtuple

FilterResult = namedtuple("FilterResult", ["allowed", "reason", "message"])

PHONE_NUMBER = "PHONE_NUMBER"
EMAIL = "EMAIL"
CONTACT_KEYWORD = "CONTACT_KEYWORD"
TOO_MANY_DIGITS = "TOO_MANY_DIGITS"

MAX_DIGITS = 5

REASON_MESSAGES = {
    PHONE_NUMBER: "Phone numbers cannot be shared in chat. Contacts are released automatically after the unlock fee is confirmed.",
    EMAIL: "E-mail addresses cannot be shared in chat.",
    CONTACT_KEYWORD: "Moving the conversation to other apps is not allowed.",
    TOO_MANY_DIGITS: "Messages with many digits are blocked to protect against contact sharing.",
}

# ---------------------------------------
# 1. TEXT NORMALIZATION (obfuscation fixing)
# ---------------------------------------

# "um" is left out: it is also the Portuguese indefinite article.
WORDS_TO_DIGITS = {
    "zero": "0", "one": "1", "two": "2", "three": "3", "four": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "nine": "9",
    "dois": "2", "tres": "3", "três": "3", "quatro": "4", "cinco": "5",
    "seis": "6", "sete": "7", "oito": "8", "nove": "9",
}

def normalize_text(t):
    if not t:
        return ""

    for word, digit in WORDS_TO_DIGITS.items():
        t = re.sub(rf"\b{word}\b", digit, t, flags=re.IGNORECASE)

    # "(at)" / "[dot]" style e-mail obfuscation
    t = re.sub(r"[\(\[\{]\s*(at|arroba)\s*[\)\]\}]", "@", t, flags=re.IGNORECASE)
    t = re.sub(r"[\(\[\{]\s*(dot|ponto)\s*[\)\]\}]", ".", t, flags=re.IGNORECASE)
    return t

# ---------------------------------------
# 2. RULE TABLE (pattern -> rejection reason)
# ---------------------------------------

RULES = [
    # optional 2-digit area code, optional leading 9, 8 subscriber digits
    (PHONE_NUMBER, re.compile(r"(?:\(?\d{2}\)?[\s.-]?)?(?:9[\s.-]?)?\d{4}[\s.-]?\d{4}")),
    (EMAIL, re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")),
    (EMAIL, re.compile(r"@|\b(gmail|hotmail|outlook|yahoo|icloud)\b", re.IGNORECASE)),
    (CONTACT_KEYWORD, re.compile(
        r"\b(whatsapp|whats|wpp|zap|zapzap|telegram|insta|instagram|facebook|face|"
        r"fone|telefone|celular|ligar|liga|chama|contato|e-?mail|"
        r"call me|text me|phone)\b",
        re.IGNORECASE,
    )),
]

def digit_count(text):
    return sum(1 for ch in text if ch.isdigit())

def filter_outbound(text):
    """Return FilterResult(allowed, reason, message) for an outgoing chat text."""
    norm = normalize_text(text)

    for reason, pattern in RULES:
        if pattern.search(norm):
            return FilterResult(False, reason, REASON_MESSAGES[reason])

    if digit_count(norm) > MAX_DIGITS:
        return FilterResult(False, TOO_MANY_DIGITS, REASON_MESSAGES[TOO_MANY_DIGITS])

    return FilterResult(True, None, None)
