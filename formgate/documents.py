"""Submission document data.

A concept submission's effective form data is the harvested (or previously
submitted) source with the user's removals taken out and additions put in.
"""

from typing import Optional

from rdflib import Graph


def _parse(content: Optional[str]) -> Graph:
    graph = Graph()
    if content:
        graph.parse(data=content, format="turtle")
    return graph


def merge_form_data(
    source: Optional[str], additions: Optional[str] = None, removals: Optional[str] = None
) -> str:
    """Return ``(source - removals) + additions`` as Turtle.

    Examples:
        >>> merged = merge_form_data(
        ...     "<http://ex/a> <http://ex/p> 'old' .",
        ...     additions="<http://ex/a> <http://ex/p> 'new' .",
        ...     removals="<http://ex/a> <http://ex/p> 'old' .",
        ... )
        >>> "new" in merged and "old" not in merged
        True
    """
    merged = _parse(source)
    for triple in _parse(removals):
        merged.remove(triple)
    for triple in _parse(additions):
        merged.add(triple)
    return merged.serialize(format="turtle")


__all__ = [
    "merge_form_data",
]
