"""
Discovery result helpers.

Merging rules for search_multiple(): every result is tagged with the
provider that returned it, and later hits repeating an earlier URL are
dropped. Hits without a URL cannot be compared, so de-duplication keeps
every one of them rather than discarding them.
"""

from dataclasses import replace

from provider_manager.dispatcher.ports import SearchResult


def tag_source(results: list[SearchResult], provider: str) -> list[SearchResult]:
    """Return copies of results with source set to provider."""
    return [replace(result, source=provider) for result in results]


def deduplicate_by_url(results: list[SearchResult]) -> tuple[list[SearchResult], int]:
    """
    Drop results whose URL was already seen, keeping the first occurrence.

    Args:
        results: Merged results in provider query order

    Returns:
        Tuple of (unique results in original order, number removed)
    """
    seen: set[str] = set()
    unique: list[SearchResult] = []

    for result in results:
        if result.url:
            if result.url in seen:
                continue
            seen.add(result.url)
        unique.append(result)

    return unique, len(results) - len(unique)
