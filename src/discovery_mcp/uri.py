"""Path templating and query-string assembly."""

from __future__ import annotations

import string
import urllib.parse
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .errors import MissingParameterError

_FORMATTER = string.Formatter()


def template_fields(template: str) -> List[str]:
    """Return the placeholder names of ``template`` in order of appearance."""
    names: List[str] = []
    for _literal, field_name, _spec, _conversion in _FORMATTER.parse(template):
        if field_name and field_name not in names:
            names.append(field_name)
    return names


def expand_path(template: str, path_params: Mapping[str, Any]) -> str:
    names = template_fields(template)
    missing = [name for name in names if path_params.get(name) is None or str(path_params[name]) == ""]
    if missing:
        raise MissingParameterError(missing)
    # Identifiers are assigned by the service and are already path-safe.
    return template.format(**{name: str(path_params[name]) for name in names})


def serialize_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(serialize_query_value(item) for item in value)
    return str(value)


def _build_query(params: Iterable[Tuple[str, str]]) -> str:
    return urllib.parse.urlencode(list(params), quote_via=urllib.parse.quote, safe="")


def build_query(version_date: str, query_params: Mapping[str, Any], names: Iterable[str]) -> str:
    pairs: List[Tuple[str, str]] = [("version", version_date)]
    for name in names:
        value = query_params.get(name)
        if value is None:
            continue
        pairs.append((name, serialize_query_value(value)))
    return _build_query(pairs)


def build_uri(
    base: str,
    template: str,
    path_params: Mapping[str, Any],
    query_params: Mapping[str, Any],
    version_date: str,
    query_names: Optional[Iterable[str]] = None,
) -> str:
    """Join ``base`` and the expanded ``template`` and append the query string.

    ``version`` always comes first. The remaining parameters follow
    ``query_names`` (or the mapping's own order when no names are given) and
    are dropped when their value is ``None``.
    """
    path = expand_path(template, path_params)
    names = list(query_names) if query_names is not None else [key for key in query_params if key != "version"]
    query = build_query(version_date, query_params, names)
    return f"{base.rstrip('/')}{path}?{query}"
