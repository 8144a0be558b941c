"""Employee-ID format grammar.

A format such as ``EMP{YYYY}-{###}`` is split into tokens (literal text, date
placeholders, a zero-padded sequence, directory fields) and every operation
here works on that token list: rendering an ID, compiling the regex that
recognizes IDs the format produced, validation, parsing and previews.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import date
from itertools import combinations
from typing import Any, Union

from staffid.models.employee_id import IdContext, PlaceholderHelp

DEFAULT_FORMAT = "EMP{YYYY}-{###}"
INVALID_FORMAT = "Invalid format"

# Characters collapsed around a field placeholder that renders empty
SEPARATORS = "-_./ "

_PLACEHOLDER_RE = re.compile(r"\{([^{}]*)\}")
_SEQUENCE_RE = re.compile(r"#+")

DATE_PLACEHOLDERS: dict[str, tuple[int, Callable[[date], str]]] = {
    "YYYY": (4, lambda d: f"{d.year:04d}"),
    "YY": (2, lambda d: f"{d.year % 100:02d}"),
    "MM": (2, lambda d: f"{d.month:02d}"),
    "DD": (2, lambda d: f"{d.day:02d}"),
}

FIELD_PLACEHOLDERS: dict[str, str] = {
    "DEPT": "department",
    "TYPE": "employee_type",
    "LOC": "location",
}

SAMPLE_CONTEXT = IdContext(sequence=1, department="HR", location="NY", employee_type="EMP")

_HELP: list[tuple[str, str, str]] = [
    ("{YYYY}", "Full year (4 digits)", "2024"),
    ("{YY}", "Short year (2 digits)", "24"),
    ("{MM}", "Month (01-12)", "01"),
    ("{DD}", "Day (01-31)", "15"),
    ("{###}", "Sequence number, zero-padded to the number of #", "001"),
    ("{####}", "Sequence number (4 digits)", "0001"),
    ("{DEPT}", "Department, uppercase letters and digits only", "HR"),
    ("{TYPE}", "Employee type, uppercase letters and digits only", "EMP"),
    ("{LOC}", "Work location, uppercase letters and digits only", "NY"),
]


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class DateToken:
    name: str


@dataclass(frozen=True)
class SequenceToken:
    width: int


@dataclass(frozen=True)
class FieldToken:
    name: str

    @property
    def attribute(self) -> str:
        return FIELD_PLACEHOLDERS[self.name]


Token = Union[Literal, DateToken, SequenceToken, FieldToken]


def _classify(name: str, raw: str) -> Token:
    if name in DATE_PLACEHOLDERS:
        return DateToken(name)
    if _SEQUENCE_RE.fullmatch(name):
        return SequenceToken(len(name))
    if name in FIELD_PLACEHOLDERS:
        return FieldToken(name)
    return Literal(raw)


def tokenize(fmt: str) -> list[Token]:
    """Split a format into tokens; unknown placeholders and stray braces stay literal."""
    tokens: list[Token] = []
    pos = 0
    for match in _PLACEHOLDER_RE.finditer(fmt):
        if match.start() > pos:
            tokens.append(Literal(fmt[pos : match.start()]))
        tokens.append(_classify(match.group(1), match.group(0)))
        pos = match.end()
    if pos < len(fmt):
        tokens.append(Literal(fmt[pos:]))

    merged: list[Token] = []
    for token in tokens:
        if isinstance(token, Literal) and merged and isinstance(merged[-1], Literal):
            merged[-1] = Literal(merged[-1].text + token.text)
        else:
            merged.append(token)
    return merged


def normalize_field(value: str | None) -> str:
    if not value:
        return ""
    return "".join(ch for ch in value.upper() if ch.isascii() and ch.isalnum())


def _substitute(token: Token, ctx: IdContext, today: date) -> str:
    if isinstance(token, Literal):
        return token.text
    if isinstance(token, DateToken):
        return DATE_PLACEHOLDERS[token.name][1](today)
    if isinstance(token, SequenceToken):
        return str(ctx.sequence).zfill(token.width)
    return normalize_field(getattr(ctx, token.attribute))


# Rendered ID as a list of literal text and non-empty placeholder values
Layout = list[Union[str, Token]]


def _layout(tokens: list[Token], present: Collection[str]) -> Layout:
    """Drop the field placeholders not in ``present`` and collapse the separators around them.

    A separator right after an empty field is dropped when the ID so far is empty
    or already ends with that separator; an empty trailing field drops the
    separator before it.
    """
    out: Layout = []
    strip_next = False
    for index, token in enumerate(tokens):
        if isinstance(token, Literal):
            text = token.text[1:] if strip_next else token.text
            strip_next = False
            if text:
                out.append(text)
            continue

        if not isinstance(token, FieldToken) or token.name in present:
            out.append(token)
            continue

        following = tokens[index + 1] if index + 1 < len(tokens) else None
        last = out[-1] if out else None
        if isinstance(following, Literal):
            sep = following.text[0]
            strip_next = sep in SEPARATORS and (last is None or (isinstance(last, str) and last.endswith(sep)))
        elif following is None and isinstance(last, str) and last[-1] in SEPARATORS:
            out[-1] = last[:-1]
    return out


def _field_names(tokens: list[Token]) -> list[str]:
    return list(dict.fromkeys(t.name for t in tokens if isinstance(t, FieldToken)))


def render(fmt: str, ctx: IdContext, today: date | None = None) -> str:
    today = today or date.today()
    tokens = tokenize(fmt)
    present = {name for name in _field_names(tokens) if normalize_field(getattr(ctx, FIELD_PLACEHOLDERS[name]))}
    return "".join(
        item if isinstance(item, str) else _substitute(item, ctx, today) for item in _layout(tokens, present)
    )


def _layout_regex(layout: Layout, today: date | None) -> str:
    seen: set[str] = set()
    body = ""
    for item in layout:
        if isinstance(item, str):
            body += re.escape(item)
        elif isinstance(item, DateToken):
            width, formatter = DATE_PLACEHOLDERS[item.name]
            if today is not None:
                body += re.escape(formatter(today))
            elif item.name in seen:
                body += f"(?P={item.name})"
            else:
                body += f"(?P<{item.name}>\\d{{{width}}})"
            seen.add(item.name)
        elif isinstance(item, SequenceToken):
            if "sequence" in seen:
                body += f"\\d{{{item.width},}}"
            else:
                body += f"(?P<sequence>\\d{{{item.width},}})"
            seen.add("sequence")
        elif item.name in seen:
            body += f"(?P={item.name})"
        else:
            # Greedy, so a field followed by the sequence keeps its own digits
            body += f"(?P<{item.name}>[A-Z0-9]+)"
            seen.add(item.name)
    return body


class IdPattern:
    """Recognizes the IDs a format renders, one regex per combination of present fields.

    Python's ``re`` does not allow a group name twice in one pattern, so the
    alternatives are kept as separate regexes and tried in order, fewest
    fields first.
    """

    def __init__(self, patterns: list[re.Pattern[str]]) -> None:
        self.patterns = patterns
        self.group_names = frozenset(name for p in patterns for name in p.groupindex)

    def fullmatch(self, employee_id: str) -> re.Match[str] | None:
        for pattern in self.patterns:
            match = pattern.fullmatch(employee_id)
            if match:
                return match
        return None


def compile_pattern(fmt: str, today: date | None = None) -> IdPattern:
    """Pattern recognizing every ID ``fmt`` can render.

    With ``today`` the date placeholders are pinned to that date; without it they
    match any digits of the right width. Field placeholders match any normalized
    value or the collapsed empty form. Named groups: ``sequence``, the date
    placeholder names and the field placeholder names.
    """
    tokens = tokenize(fmt)
    names = _field_names(tokens)

    bodies: list[str] = []
    for size in range(len(names) + 1):
        for present in combinations(names, size):
            body = _layout_regex(_layout(tokens, present), today)
            if body not in bodies:
                bodies.append(body)
    return IdPattern([re.compile(body) for body in bodies])


def validate_format(fmt: str) -> tuple[bool, list[str]]:
    errors: list[str] = []

    if not fmt or not fmt.strip():
        errors.append("Format cannot be empty")
        return False, errors

    tokens = tokenize(fmt)
    sequences = [t for t in tokens if isinstance(t, SequenceToken)]
    if not sequences:
        errors.append("Format must include a sequence placeholder such as {###}")
    elif len(sequences) > 1:
        errors.append("Format cannot have multiple sequence placeholders")

    # Field values may contain digits, so a field touching the sequence makes the split ambiguous
    for left, right in zip(tokens, tokens[1:]):
        if {type(left), type(right)} == {FieldToken, SequenceToken}:
            field = left if isinstance(left, FieldToken) else right
            errors.append(f"{{{field.name}}} must be separated from the sequence placeholder")

    for name in _PLACEHOLDER_RE.findall(fmt):
        if isinstance(_classify(name, name), Literal):
            errors.append(f"Unknown placeholder: {{{name}}}")

    if fmt.count("{") != fmt.count("}"):
        errors.append("Unbalanced braces in format")

    return len(errors) == 0, errors


def preview_format(fmt: str, today: date | None = None) -> str:
    valid, _ = validate_format(fmt)
    if not valid:
        return INVALID_FORMAT
    return render(fmt, SAMPLE_CONTEXT, today)


def preview_examples(fmt: str, count: int = 5, today: date | None = None) -> list[str]:
    valid, _ = validate_format(fmt)
    if not valid:
        return [INVALID_FORMAT] * count
    return [render(fmt, SAMPLE_CONTEXT.model_copy(update={"sequence": i}), today) for i in range(1, count + 1)]


def parse_employee_id(employee_id: str, fmt: str) -> dict[str, Any]:
    """Recover the parts of an ID rendered by ``fmt``; empty when it does not match."""
    match = compile_pattern(fmt).fullmatch(employee_id)
    if not match:
        return {}

    groups = match.groupdict()
    result: dict[str, Any] = {}
    if groups.get("YYYY"):
        result["year"] = int(groups["YYYY"])
    elif groups.get("YY"):
        result["year"] = 2000 + int(groups["YY"])
    if groups.get("MM"):
        result["month"] = int(groups["MM"])
    if groups.get("DD"):
        result["day"] = int(groups["DD"])
    if groups.get("sequence"):
        result["sequence"] = int(groups["sequence"])
    for name, attribute in FIELD_PLACEHOLDERS.items():
        if groups.get(name):
            result[attribute] = groups[name]
    return result


def placeholder_help() -> list[PlaceholderHelp]:
    return [PlaceholderHelp(placeholder=p, description=d, example=e) for p, d, e in _HELP]
