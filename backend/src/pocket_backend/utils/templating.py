"""Parameter extraction and substitution for ``{{name}}`` prompt templates.

Everything here is pure string processing: no I/O and no shared state, so the
functions are safe to call on every keystroke.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Iterable, Literal, Mapping, Sequence

from ..core.errors import (
    MissingParameterDefinitionsError,
    RequiredValuesMissingError,
    UndefinedParametersError,
)


ParameterType = Literal["short-text", "long-text"]
DEFAULT_PARAMETER_TYPE: ParameterType = "short-text"

# `{{` + one or more non-brace characters + `}}`; the capture is trimmed afterwards.
TOKEN_RE = re.compile(r"{{([^{}]+)}}")


@dataclass(frozen=True)
class Parameter:
    name: str
    type: ParameterType = DEFAULT_PARAMETER_TYPE


@dataclass(frozen=True)
class PreviewResult:
    text: str
    missing_count: int
    missing: list[str] = field(default_factory=list)


def extract_parameters(content: str) -> list[str]:
    """Return distinct parameter names in order of first occurrence."""
    if not content:
        return []
    names: dict[str, None] = {}
    for match in TOKEN_RE.finditer(content):
        name = match.group(1).strip()
        if name:
            names.setdefault(name, None)
    return list(names)


def fill_template(content: str, values: Mapping[str, str]) -> str:
    """Substitute every ``{{ name }}`` for each name present in ``values``.

    Tokens without a value are left untouched; values without a token are ignored.
    Runs in a single pass, so a value that itself looks like a token is never
    expanded again.
    """
    if not values:
        return content

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name in values:
            return str(values[name])
        return match.group(0)

    return TOKEN_RE.sub(_replace, content)


def _is_blank(value: object) -> bool:
    return value is None or not str(value).strip()


def fill_strict(
    content: str,
    values: Mapping[str, str],
    required: Iterable[str] | None = None,
) -> str:
    """Fill ``content`` only once every required parameter has a non-blank value.

    ``required`` defaults to the parameters found in ``content``.
    """
    names = list(required) if required is not None else extract_parameters(content)
    missing = [name for name in names if _is_blank(values.get(name))]
    if missing:
        raise RequiredValuesMissingError(missing)
    return fill_template(content, values)


def fill_with_placeholders(content: str, values: Mapping[str, str]) -> PreviewResult:
    """Render a live preview: blank values re-emit ``{{name}}`` and are reported as missing.

    Missing tokens are counted on ``content``, so a value that happens to look like
    a token is not reported.
    """
    effective = {
        name: (f"{{{{{name}}}}}" if _is_blank(value) else str(value))
        for name, value in values.items()
    }
    text = fill_template(content, effective)
    unfilled = [
        name
        for name in (m.group(1).strip() for m in TOKEN_RE.finditer(content))
        if name and _is_blank(values.get(name))
    ]
    return PreviewResult(
        text=text,
        missing_count=len(unfilled),
        missing=list(dict.fromkeys(unfilled)),
    )


def sync_parameters(content: str, existing: Sequence[Parameter] | None = None) -> list[Parameter]:
    """Align parameter definitions with ``content``.

    Definitions whose name still appears keep their position and type, newly seen
    names are appended as short text and stale ones are dropped.
    """
    names = extract_parameters(content)
    if not names:
        return []
    present = set(names)
    kept: list[Parameter] = []
    seen: set[str] = set()
    for param in existing or []:
        if param.name in present and param.name not in seen:
            kept.append(param)
            seen.add(param.name)
    kept.extend(Parameter(name=name) for name in names if name not in seen)
    return kept


def validate_parameter_definitions(content: str, parameters: Sequence[Parameter] | None) -> None:
    """Reject content whose tokens are not all declared in ``parameters``."""
    extracted = extract_parameters(content)
    if not extracted:
        return
    if not parameters:
        raise MissingParameterDefinitionsError(extracted)
    defined = {param.name for param in parameters}
    missing = [name for name in extracted if name not in defined]
    if missing:
        raise UndefinedParametersError(missing)
