from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import Document


def _sort_key(doc: Document):
    return (doc.date, doc.slug)


class PostCollection(Sequence[Document]):
    """Posts ordered newest first, with helpers for templates and code."""

    def __init__(self, posts: Iterable[Document]):
        self._posts = sorted(posts, key=_sort_key, reverse=True)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PostCollection(self._posts[item])
        return self._posts[item]

    def latest(self, count: int = 5) -> PostCollection:
        return PostCollection(self._posts[:count])

    def in_category(self, category: str) -> PostCollection:
        return PostCollection(p for p in self._posts if category in p.categories)

    def with_tag(self, tag: str) -> PostCollection:
        return PostCollection(p for p in self._posts if tag in p.tags)

    def drafts(self) -> PostCollection:
        return PostCollection(p for p in self._posts if p.draft)

    def published(self) -> PostCollection:
        return PostCollection(p for p in self._posts if not p.draft)

    def chronological(self) -> list[Document]:
        """Return posts oldest first."""
        return list(reversed(self._posts))

    def by_year(self) -> list[tuple[int, PostCollection]]:
        """Group posts by year, newest year first."""
        years: dict[int, list[Document]] = {}
        for post in self._posts:
            years.setdefault(post.date.year, []).append(post)
        return [(year, PostCollection(posts)) for year, posts in years.items()]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"


class TaxonomyIndex(Mapping[str, PostCollection]):
    """Mapping of category or tag name to the posts carrying it."""

    def __init__(self, mapping: dict[str, Iterable[Document]]):
        self._mapping = {k: PostCollection(v) for k, v in mapping.items()}

    @classmethod
    def from_posts(cls, posts: Iterable[Document], attribute: str) -> TaxonomyIndex:
        """Index posts by their ``categories`` or ``tags``."""
        mapping: dict[str, list[Document]] = {}
        for post in posts:
            for name in getattr(post, attribute):
                mapping.setdefault(name, []).append(post)
        return cls(mapping)

    def __getitem__(self, key: str) -> PostCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def names(self) -> list[str]:
        return sorted(self._mapping, key=str.lower)

    def counts(self) -> dict[str, int]:
        return {name: len(self._mapping[name]) for name in self.names()}

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TaxonomyIndex({len(self._mapping)} entries)"


def link_neighbours(posts: Sequence[Document]) -> None:
    """Set ``previous``/``next`` on posts in chronological order.

    ``previous`` is the older post and ``next`` the newer one, as in Jekyll.
    """
    ordered = sorted(posts, key=_sort_key)
    for index, post in enumerate(ordered):
        post.previous = ordered[index - 1] if index > 0 else None
        post.next = ordered[index + 1] if index + 1 < len(ordered) else None
