"""
Field Extractors - strict-to-loose strategy cascades over one free-text cell.

Each semantic field (size, color, design candidate) has an ordered list of
named strategies. A strategy is a pure function ``(text, rules) -> value | None``
and the first one that returns a value wins, so the priority order is the list
order and every strategy can be tested on its own.

Example cells:
- "상품명: 29.노란나비 / 사이즈: 110"  -> size 110 (label), design "노란나비"
- "J015 맨투맨/네이비 140"            -> size 140 (trailing), color "네이비", design "J015맨투맨"
- "리틀베어 후드/블랙(성인) M"         -> size 100 (last letter), color "블랙"

Product codes and size letters are delimited with ASCII-only boundaries:
Hangul directly after a code ("J015맨투맨") still ends the code.
"""

from __future__ import annotations

import re
from typing import Callable

from order_tally.rules import RuleTable
from order_tally.value_parser import clean_cell

# Product code: 1-4 uppercase letters followed by 2-3 digits ("J015", "W152")
CODE_PATTERN = re.compile(r"(?<![A-Za-z0-9])([A-Z]{1,4}\d{2,3})(?![A-Za-z0-9])")

_NOT_ALNUM_AFTER = r"(?![A-Za-z0-9])"
_NOT_ALNUM_BEFORE = r"(?<![A-Za-z0-9])"
_AGE_TAG = r"\((?:성인|아동)\)"
_AGE_TAG_RE = re.compile(_AGE_TAG)
_SIZE_UNIT_WORDS = r"(?:호|사이즈|size|cm)"
_ORDINAL_PREFIX = re.compile(r"^(\d+\.|\d+[_-])")
# Field labels in option text; never a color whatever the rule table says
_LABEL_WORDS = frozenset({"상품명", "사이즈", "색상", "옵션", "옵션명", "수량"})


def _adult_tokens(rules: RuleTable) -> str:
    """Alternation of the adult-size letters, longest first ("2XL|XL|S|M|L")."""
    tokens = sorted(rules.adult_size_map, key=len, reverse=True)
    return "(?:" + "|".join(re.escape(t) for t in tokens) + ")"


def _numeric_size(token: str, rules: RuleTable) -> int | None:
    size = int(token)
    return size if rules.is_allowed_size(size) else None


def _token_size(token: str, rules: RuleTable) -> int | None:
    """Resolve a label value that is either digits or an adult-size letter."""
    if token.isdigit():
        return _numeric_size(token, rules)
    return rules.adult_size(token)


# ============================================================================
# SIZE
# ============================================================================

def _size_from_label(text: str, rules: RuleTable) -> int | None:
    # "사이즈: 110", "사이즈=XL"
    m = re.search(
        rf"사이즈\s*[:=]\s*({_adult_tokens(rules)}|\d{{2,3}}){_NOT_ALNUM_AFTER}",
        text,
        re.IGNORECASE,
    )
    return _token_size(m.group(1), rules) if m else None


def _size_from_colon_letter(text: str, rules: RuleTable) -> int | None:
    # "후드 :XL", "블랙:(성인)M / 2개" - letter closing a colon segment
    matches = list(re.finditer(
        rf":\s*(?:{_AGE_TAG}\s*)?({_adult_tokens(rules)}){_NOT_ALNUM_AFTER}\s*(?=$|[,/)\]])",
        text,
        re.IGNORECASE,
    ))
    return rules.adult_size(matches[-1].group(1)) if matches else None


def _size_from_colon_digits(text: str, rules: RuleTable) -> int | None:
    # ":140" where no later colon follows
    m = re.search(r":\s*(\d{2,3})(?!\d)(?!.*:)", text, re.DOTALL)
    return _numeric_size(m.group(1), rules) if m else None


def _size_from_tagged_digits(text: str, rules: RuleTable) -> int | None:
    # "(아동)120"
    m = re.search(rf"{_AGE_TAG}\s*(\d{{2,3}})(?!\d)", text)
    return _numeric_size(m.group(1), rules) if m else None


def _size_from_trailing_digits(text: str, rules: RuleTable) -> int | None:
    # "... 140", "... 140호"
    m = re.search(
        rf"{_NOT_ALNUM_BEFORE}(\d{{2,3}})\s*{_SIZE_UNIT_WORDS}?\s*$",
        text,
        re.IGNORECASE,
    )
    return _numeric_size(m.group(1), rules) if m else None


def _size_from_last_letter(text: str, rules: RuleTable) -> int | None:
    matches = list(re.finditer(
        rf"{_NOT_ALNUM_BEFORE}({_adult_tokens(rules)}){_NOT_ALNUM_AFTER}",
        text,
        re.IGNORECASE,
    ))
    return rules.adult_size(matches[-1].group(1)) if matches else None


def _size_from_numeric_scan(text: str, rules: RuleTable) -> int | None:
    # Rightmost allowed number; a letter right before it means a product code ("W152")
    for m in reversed(list(re.finditer(r"(?<!\d)\d{2,3}(?!\d)", text))):
        start = m.start()
        prev = text[start - 1] if start > 0 else " "
        if prev.isascii() and prev.isalpha():
            continue
        size = _numeric_size(m.group(0), rules)
        if size is not None:
            return size
    return None


SizeStrategy = tuple[str, Callable[[str, RuleTable], int | None]]

SIZE_STRATEGIES: list[SizeStrategy] = [
    ("label", _size_from_label),
    ("colon_letter", _size_from_colon_letter),
    ("colon_digits", _size_from_colon_digits),
    ("tagged_digits", _size_from_tagged_digits),
    ("trailing_digits", _size_from_trailing_digits),
    ("last_letter", _size_from_last_letter),
    ("numeric_scan", _size_from_numeric_scan),
]


def match_size(
    text: object,
    rules: RuleTable,
    strategies: list[SizeStrategy] | None = None,
) -> tuple[int | None, str]:
    """
    Run the size cascade; returns (size, strategy name) or (None, "").

    A custom strategy list replaces SIZE_STRATEGIES for this call. Its results
    are not checked against the allowed sizes here; resolve_row does that.
    """
    s = clean_cell(text)
    if not s:
        return None, ""
    for name, strategy in strategies or SIZE_STRATEGIES:
        size = strategy(s, rules)
        if size is not None:
            return size, name
    return None, ""


def extract_size(text: object, rules: RuleTable) -> int | None:
    return match_size(text, rules)[0]


# ============================================================================
# COLOR
# ============================================================================

def normalize_color(value: str, rules: RuleTable) -> str:
    """Strip (성인)/(아동) tags, collapse whitespace, apply aliases."""
    s = _AGE_TAG_RE.sub("", value)
    s = " ".join(s.split())
    return rules.apply_aliases(s).strip()


def _accept_color(candidate: str, rules: RuleTable) -> str | None:
    c = normalize_color(candidate, rules)
    if not c or c.isdigit() or c in _LABEL_WORDS:
        return None
    if rules.is_adult_token(c) or rules.is_stopword(c) or c in rules.keywords:
        return None
    return c


def _color_from_label(text: str, rules: RuleTable) -> str | None:
    m = re.search(r"색상\s*[:=]\s*([^,/\s)]+)", text)
    return _accept_color(m.group(1), rules) if m else None


def _color_from_colon_pair(text: str, rules: RuleTable) -> str | None:
    """
    Word directly before ":" and a size token ("블랙: 110", "네이비 :(성인)L").

    "사이즈: 110" has the same shape, so label words are rejected in
    _accept_color independently of the stopword list.
    """
    size_token = rf"(?:{_adult_tokens(rules)}|\d{{2,3}}){_NOT_ALNUM_AFTER}"
    for m in re.finditer(
        rf"([가-힣]+|[A-Za-z]+)\s*:\s*(?:{_AGE_TAG}\s*)?{size_token}",
        text,
        re.IGNORECASE,
    ):
        color = _accept_color(m.group(1), rules)
        if color:
            return color
    return None


def _color_from_slash(text: str, rules: RuleTable) -> str | None:
    # "/네이비 140", "/블랙(성인) M", "/그레이(기모)"
    size_token = rf"(?:{_adult_tokens(rules)}|\d{{2,3}}){_NOT_ALNUM_AFTER}"
    for m in re.finditer(
        rf"/\s*([가-힣]+|[A-Za-z]+)\s*(?:\([^)]*\)\s*(?:{size_token})?|{size_token})",
        text,
        re.IGNORECASE,
    ):
        color = _accept_color(m.group(1), rules)
        if color:
            return color
    return None


def _color_from_paren(text: str, rules: RuleTable) -> str | None:
    for m in re.finditer(r"\(([^)]+)\)", text):
        color = _accept_color(m.group(1), rules)
        if color:
            return color
    return None


def _color_from_vocabulary(text: str, rules: RuleTable) -> str | None:
    for color in sorted(rules.colors, key=lambda c: (-len(c), c)):
        if color in text:
            return color
    return None


COLOR_STRATEGIES: list[tuple[str, Callable[[str, RuleTable], str | None]]] = [
    ("label", _color_from_label),
    ("colon_pair", _color_from_colon_pair),
    ("slash", _color_from_slash),
    ("paren", _color_from_paren),
    ("vocabulary", _color_from_vocabulary),
]


def match_color(text: object, rules: RuleTable) -> tuple[str, str]:
    """Run the color cascade; returns (color, strategy name) or ("", "")."""
    s = clean_cell(text)
    if not s:
        return "", ""
    for name, strategy in COLOR_STRATEGIES:
        color = strategy(s, rules)
        if color:
            return color, name
    return "", ""


def extract_color(text: object, rules: RuleTable) -> str:
    return match_color(text, rules)[0]


# ============================================================================
# DESIGN CANDIDATES
# ============================================================================

def extract_design_from_code(text: object, rules: RuleTable) -> str:
    """Product code plus the longest product keyword in the text ("J015맨투맨")."""
    s = clean_cell(text)
    m = CODE_PATTERN.search(s)
    if not m:
        return ""
    keyword = next((k for k in rules.keywords if k in s), "")
    return f"{m.group(1)}{keyword}"


def extract_design_from_free_text(text: object, rules: RuleTable, size: int | None = None) -> str:
    """
    Recover a design name once label, size and color noise is removed.

    Args:
        text: Raw cell text.
        rules: Active rule table.
        size: Size already resolved for the row; extracted from the text if None.
    """
    s = clean_cell(text)
    if not s:
        return ""
    s = re.sub(r"상품명\s*[:=]\s*", "", s)
    s = re.sub(r"색상\s*[:=].*?(?:[,/]|(?=\s사이즈)|$)", "", s)
    if size is None:
        size = extract_size(s, rules)
    s = re.sub(r"사이즈\s*[:=]\s*[^,/\s]*", "", s)
    if size is not None:
        hits = list(re.finditer(rf"{_NOT_ALNUM_BEFORE}{size}(?!\d)", s))
        if hits:
            last = hits[-1]
            s = s[:last.start()] + s[last.end():]

    s = re.sub(
        rf"{_NOT_ALNUM_BEFORE}(?:{_AGE_TAG}\s*)?{_adult_tokens(rules)}{_NOT_ALNUM_AFTER}",
        "",
        s,
        flags=re.IGNORECASE,
    )
    s = _AGE_TAG_RE.sub("", s)

    for sep in (":", "/", ","):
        if sep in s:
            s = s.split(sep)[0]

    s = _ORDINAL_PREFIX.sub("", s.strip())
    s = re.sub(r"[\s/,\-]+$", "", s)
    return rules.apply_aliases(" ".join(s.split())).strip()


def extract_design_from_native_script(text: object, rules: RuleTable) -> str:
    """Longest Hangul word that is not a color or stopword; first one wins ties."""
    tokens = [
        t for t in re.findall(r"[가-힣]{2,}", clean_cell(text))
        if not rules.is_color(t) and not rules.is_stopword(t)
    ]
    if not tokens:
        return ""
    unique = list(dict.fromkeys(tokens))
    return max(unique, key=len)
